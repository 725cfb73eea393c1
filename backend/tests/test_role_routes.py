"""
Role management API tests.

Verifies:
- Only principals with the roles.* capabilities reach the role endpoints
- Custom roles are validated against the permission catalogue
- System roles cannot be deleted or have their bundle changed
- Role assignment takes effect on the user's next request
"""

import pytest

from conftest import create_custom_role
from permitflow.extensions import db
from permitflow.models import AuditLog, Role


pytestmark = pytest.mark.auth


class TestRoleAccess:

    def test_admin_lists_roles(self, client, admin_headers):
        resp = client.get("/api/roles", headers=admin_headers)
        assert resp.status_code == 200
        names = [r["name"] for r in resp.json["roles"]]
        assert {"ADMIN", "FIREMAN", "REQUESTOR"} <= set(names)

    @pytest.mark.parametrize("headers_fixture", ["fireman_headers", "requestor_headers"])
    def test_non_admin_is_denied(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        resp = client.get("/api/roles", headers=headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"
        assert resp.json["required_capability"] == "can_view_roles"

    def test_permission_catalogue(self, client, admin_headers):
        resp = client.get("/api/roles/permissions", headers=admin_headers)
        assert resp.status_code == 200
        keys = {p["key"] for p in resp.json["permissions"]}
        assert {"permits.create", "approvals.approve", "roles.edit"} <= keys
        assert "permits" in resp.json["grouped"]

    def test_missing_role(self, client, admin_headers):
        assert client.get("/api/roles/9999", headers=admin_headers).status_code == 404


class TestCreateRole:

    def test_create_custom_role(self, client, admin_headers):
        resp = client.post("/api/roles", json={
            "name": "site supervisor",
            "display_name": "Site Supervisor",
            "permissions": ["permits.view", "approvals.approve", "permits.view"],
            "ui_config": {"accentColor": "amber"},
        }, headers=admin_headers)

        assert resp.status_code == 201, resp.json
        role = resp.json["role"]
        assert role["name"] == "SITE_SUPERVISOR"
        assert role["is_system"] is False
        assert role["permissions"] == ["permits.view", "approvals.approve"]
        assert role["user_count"] == 0
        assert db.session.query(AuditLog).filter_by(event_type="ROLE_CREATED").count() == 1

    @pytest.mark.parametrize("name", ["ADMIN", "fireman", "SAFETY_OFFICER"])
    def test_reserved_names(self, client, admin_headers, name):
        resp = client.post("/api/roles", json={"name": name, "display_name": "X"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Role name is reserved"

    def test_duplicate_name(self, client, admin_headers):
        create_custom_role("AUDITOR", ["permits.view"])
        resp = client.post("/api/roles", json={"name": "Auditor", "display_name": "Auditor"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Role name already exists"

    def test_unknown_permission_key(self, client, admin_headers):
        resp = client.post("/api/roles", json={
            "name": "BROKEN",
            "display_name": "Broken",
            "permissions": ["permits.view", "permits.teleport"],
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["unknown_permissions"] == ["permits.teleport"]


class TestUpdateAndDelete:

    def test_update_custom_role(self, client, admin_headers):
        role = create_custom_role("AUDITOR", ["permits.view"])
        resp = client.put(f"/api/roles/{role.id}", json={
            "display_name": "Internal Auditor",
            "permissions": ["permits.view", "permits.view_all"],
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["role"]["display_name"] == "Internal Auditor"
        assert resp.json["role"]["permissions"] == ["permits.view", "permits.view_all"]

    def test_rename_rejected(self, client, admin_headers):
        role = create_custom_role("AUDITOR", [])
        resp = client.put(f"/api/roles/{role.id}", json={"name": "REVIEWER"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_system_role_bundle_is_fixed(self, client, admin_headers):
        fireman = db.session.query(Role).filter_by(name="FIREMAN").one()
        resp = client.put(f"/api/roles/{fireman.id}", json={"permissions": []}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Permissions of system roles cannot be modified"

    def test_system_role_display_fields_editable(self, client, admin_headers):
        fireman = db.session.query(Role).filter_by(name="FIREMAN").one()
        resp = client.put(f"/api/roles/{fireman.id}", json={"ui_config": {"accentColor": "red"}}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["role"]["ui_config"] == {"accentColor": "red"}

    def test_system_role_cannot_be_deleted(self, client, admin_headers):
        requestor = db.session.query(Role).filter_by(name="REQUESTOR").one()
        resp = client.delete(f"/api/roles/{requestor.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cannot delete system roles"

    def test_role_with_users_cannot_be_deleted(self, client, admin_headers, requestor_user):
        role = create_custom_role("AUDITOR", ["permits.view"])
        requestor_user.role_id = role.id
        db.session.commit()

        resp = client.delete(f"/api/roles/{role.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert "assigned users" in resp.json["error"]

    def test_delete_unused_custom_role(self, client, admin_headers):
        role = create_custom_role("AUDITOR", ["permits.view"])
        assert client.delete(f"/api/roles/{role.id}", headers=admin_headers).status_code == 200
        assert db.session.get(Role, role.id) is None


class TestAssignRole:

    def test_assignment_applies_on_next_request(
        self, client, admin_headers, requestor_user, requestor_headers
    ):
        supervisor = create_custom_role("SITE_SUPERVISOR", ["permits.view", "permits.view_all", "approvals.approve"])

        resp = client.post("/api/roles/assign", json={
            "user_id": requestor_user.id,
            "role_id": supervisor.id,
        }, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["role"] == "SITE_SUPERVISOR"

        me = client.get("/api/auth/me", headers=requestor_headers).json["user"]
        assert me["role"] == "SITE_SUPERVISOR"
        assert me["effective_role"] == "CUSTOM"
        assert me["capabilities"]["can_approve"] is True
        assert me["capabilities"]["can_create_permits"] is False

    def test_missing_ids(self, client, admin_headers):
        resp = client.post("/api/roles/assign", json={"user_id": 1}, headers=admin_headers)
        assert resp.status_code == 400

    def test_requestor_cannot_assign(self, client, requestor_user, requestor_headers):
        admin_role = db.session.query(Role).filter_by(name="ADMIN").one()
        resp = client.post("/api/roles/assign", json={
            "user_id": requestor_user.id,
            "role_id": admin_role.id,
        }, headers=requestor_headers)
        assert resp.status_code == 403
        db.session.refresh(requestor_user)
        assert requestor_user.role.name == "REQUESTOR"
