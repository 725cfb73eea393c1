# backend/permitflow/routes/system.py
"""
System health endpoint.

Checks database connectivity and that the system roles and permission
catalogue have been seeded.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Permission, Permit, Role
from ..permissions import SYSTEM_ROLE_NAMES
from permitflow.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        permit_count = db.session.query(Permit).count()
        role_names = {name for (name,) in db.session.query(Role.name).all()}
        permission_count = db.session.query(Permission).count()

        elapsed_ms = (time.time() - start_time) * 1000
        missing_roles = sorted(SYSTEM_ROLE_NAMES - role_names)

        result = {
            "status": "degraded" if missing_roles or not permission_count else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "permits": permit_count,
                "roles": len(role_names),
                "permissions": permission_count,
            }
        }
        if missing_roles:
            result["warning"] = f"Missing roles: {', '.join(missing_roles)}"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status
