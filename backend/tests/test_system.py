"""Health endpoint and CORS hook."""

from permitflow.extensions import db
from permitflow.models import Role


def test_health_before_seeding(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    database = resp.json["checks"]["database"]
    assert database["status"] == "degraded"
    assert "ADMIN" in database["warning"]


def test_health_after_seeding(client, setup_roles):
    resp = client.get("/health")
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["details"]["roles"] == db.session.query(Role).count()


def test_cors_headers_for_allowed_origin(client, db_session):
    origin = "http://localhost:5173"
    resp = client.get("/health", headers={"Origin": origin})
    assert resp.headers["Access-Control-Allow-Origin"] == origin
    resp = client.get("/health", headers={"Origin": "http://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers
