"""
Pytest fixtures for permitflow backend tests.

Provides test database setup, seeded roles/users, permit factories and the
Flask test client.
"""

from datetime import timedelta

import pytest
from permitflow import create_app
from permitflow.config import TestingConfig
from permitflow.extensions import db
from permitflow.lifecycle import PermitStatus
from permitflow.models import Permit, Role
from permitflow.permissions import SystemRole
from permitflow.services import permission_service, role_service
from permitflow.services.auth_service import create_user
from permitflow.services.permit_service import next_permit_number
from permitflow.time_utils import to_utc_z, utcnow
from permitflow.validation import MANDATORY_PPE


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup the permission catalogue and the system roles."""
    permission_service.initialize_permissions()
    role_service.initialize_default_roles()
    db_session.commit()


@pytest.fixture(scope='function')
def admin_user(setup_roles):
    return create_user("admin@permitflow.local", PASSWORD, "System", "Admin", SystemRole.ADMIN)


@pytest.fixture(scope='function')
def fireman_user(setup_roles):
    return create_user("fireman@permitflow.local", PASSWORD, "Fire", "Man", SystemRole.FIREMAN)


@pytest.fixture(scope='function')
def requestor_user(setup_roles):
    return create_user("requestor@permitflow.local", PASSWORD, "Permit", "Requestor", SystemRole.REQUESTOR)


@pytest.fixture(scope='function')
def other_requestor(setup_roles):
    return create_user("other@permitflow.local", PASSWORD, "Other", "Requestor", SystemRole.REQUESTOR)


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email, PASSWORD))


@pytest.fixture(scope='function')
def fireman_headers(client, fireman_user):
    return auth_headers(get_auth_token(client, fireman_user.email, PASSWORD))


@pytest.fixture(scope='function')
def requestor_headers(client, requestor_user):
    return auth_headers(get_auth_token(client, requestor_user.email, PASSWORD))


@pytest.fixture(scope='function')
def other_headers(client, other_requestor):
    return auth_headers(get_auth_token(client, other_requestor.email, PASSWORD))


def permit_payload(**overrides) -> dict:
    """A complete, valid permit submission starting in one hour."""
    start = utcnow() + timedelta(hours=1)
    payload = {
        "title": "Welding on pipe rack 3",
        "description": "Replace flange on cooling water line",
        "location": "Unit 2 pipe rack",
        "work_type": "HOT_WORK",
        "priority": "HIGH",
        "start_date": to_utc_z(start),
        "end_date": to_utc_z(start + timedelta(hours=8)),
        "contractor_name": "Acme Fabrication",
        "workers": [
            {
                "name": "Ravi Kumar",
                "phone": "9876543210",
                "id_proof_type": "AADHAAR",
                "id_proof_number": "1234-5678-9012",
                "id_proof_image": "uploads/id/ravi.png",
            }
        ],
        "hazards": ["Fire", "Burns"],
        "precautions": ["Fire watch posted"],
        "equipment": list(MANDATORY_PPE),
        "declaration_accepted": True,
    }
    payload.update(overrides)
    return payload


def make_permit(owner, *, status=PermitStatus.PENDING, end_in=timedelta(hours=8), extended_until=None, **fields):
    """Insert a permit directly in any status (bypasses the workflow)."""
    now = utcnow()
    permit = Permit(
        permit_number=next_permit_number(),
        title=fields.pop("title", "Confined space entry"),
        location=fields.pop("location", "Tank T-101"),
        work_type=fields.pop("work_type", "CONFINED_SPACE"),
        status=status,
        start_date=now - timedelta(hours=1),
        end_date=now + end_in,
        is_extended=extended_until is not None,
        extended_until=extended_until,
        workers=[{"name": "A. Worker", "id_proof_number": "X1", "id_proof_image": "img.png"}],
        equipment=list(MANDATORY_PPE),
        declaration_accepted=True,
        created_by_id=owner.id,
        **fields,
    )
    db.session.add(permit)
    db.session.commit()
    return permit


def create_custom_role(name: str, permissions: list) -> Role:
    return role_service.create_role({
        "name": name,
        "display_name": name.title(),
        "permissions": permissions,
    })


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
