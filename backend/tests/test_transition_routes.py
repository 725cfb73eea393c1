"""
Permit workflow API tests.

Verifies:
- Each transition endpoint applies the documented state change
- Approval records are appended, never rewritten
- Every action lands in the action history
- Wrong state -> 409, missing capability -> 403, bad input -> 400
- A failed transition leaves the permit untouched
"""

from datetime import timedelta, timezone

import pytest

from conftest import make_permit
from permitflow.extensions import db
from permitflow.lifecycle import ApprovalDecision, PermitStatus
from permitflow.models import PermitActionHistory, PermitApproval
from permitflow.services import lifecycle_service, permission_service
from permitflow.time_utils import to_utc_z


pytestmark = pytest.mark.lifecycle


def post(client, permit, action, headers, **body):
    return client.post(f"/api/permits/{permit.id}/{action}", json=body, headers=headers)


class TestApprove:

    def test_fireman_approves_with_no_explicit_permissions(
        self, client, requestor_user, fireman_user, fireman_headers
    ):
        # Strip the fireman role bundle: the approver shortcut alone must suffice
        fireman_user.role.permissions = []
        db.session.commit()
        permit = make_permit(requestor_user)

        resp = post(client, permit, "approve", fireman_headers, comment="Looks safe")
        assert resp.status_code == 200, resp.json
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.APPROVED
        assert len(body["approvals"]) == 1
        assert body["approvals"][0]["decision"] == ApprovalDecision.APPROVED
        assert body["approvals"][0]["approver_id"] == fireman_user.id
        assert body["approvals"][0]["approver_role"] == "FIREMAN"
        assert [h["action"] for h in body["action_history"]] == ["APPROVED"]

    def test_requestor_cannot_approve(self, client, requestor_user, requestor_headers):
        permit = make_permit(requestor_user)
        resp = post(client, permit, "approve", requestor_headers)
        assert resp.status_code == 403
        db.session.refresh(permit)
        assert permit.status == PermitStatus.PENDING

    def test_approve_closed_permit_conflicts(self, client, requestor_user, admin_headers):
        permit = make_permit(requestor_user, status=PermitStatus.CLOSED)
        resp = post(client, permit, "approve", admin_headers)
        assert resp.status_code == 409
        assert "current status is 'CLOSED'" in resp.json["error"]

    def test_second_approval_conflicts(self, client, requestor_user, fireman_headers, admin_headers):
        permit = make_permit(requestor_user)
        assert post(client, permit, "approve", fireman_headers).status_code == 200
        assert post(client, permit, "approve", admin_headers).status_code == 409
        assert db.session.query(PermitApproval).filter_by(permit_id=permit.id).count() == 1

    def test_missing_permit(self, client, db_session, fireman_headers):
        resp = client.post("/api/permits/4040/approve", json={}, headers=fireman_headers)
        assert resp.status_code == 404


class TestReject:

    @pytest.mark.parametrize("body", [{}, {"comment": ""}, {"comment": "   "}])
    def test_comment_required(self, client, requestor_user, fireman_headers, body):
        permit = make_permit(requestor_user)
        resp = client.post(f"/api/permits/{permit.id}/reject", json=body, headers=fireman_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "A comment is required when rejecting a permit"
        db.session.refresh(permit)
        assert permit.status == PermitStatus.PENDING
        assert permit.approvals == []

    def test_reject_with_comment(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user)
        resp = post(client, permit, "reject", fireman_headers, comment="No gas test attached")
        assert resp.status_code == 200
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.REJECTED
        assert body["approvals"][0]["decision"] == ApprovalDecision.REJECTED
        assert body["approvals"][0]["comment"] == "No gas test attached"


class TestExtend:

    def test_extend_strictly_later(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        new_end = permit.end_date + timedelta(hours=2)

        resp = post(client, permit, "extend", fireman_headers, extended_until=to_utc_z(new_end), reason="Rain delay")
        assert resp.status_code == 200, resp.json
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.EXTENDED
        assert body["is_extended"] is True
        assert body["extended_until"] == to_utc_z(new_end)
        assert body["effective_end"] == to_utc_z(new_end)
        assert body["approvals"] == []
        assert body["action_history"][-1]["comment"] == "Rain delay"

    def test_extend_not_later_rejected(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        resp = post(client, permit, "extend", fireman_headers, extended_until=to_utc_z(permit.end_date))
        assert resp.status_code == 400
        assert "strictly after" in resp.json["error"]

    def test_second_extension_compares_with_first(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        first = permit.end_date + timedelta(hours=4)
        assert post(client, permit, "extend", fireman_headers, extended_until=to_utc_z(first)).status_code == 200

        earlier = first - timedelta(hours=1)
        resp = post(client, permit, "extend", fireman_headers, extended_until=to_utc_z(earlier))
        assert resp.status_code == 400

    def test_bad_date(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        resp = post(client, permit, "extend", fireman_headers, extended_until="next tuesday")
        assert resp.status_code == 400


class TestRevokeAndReapprove:

    def test_full_cycle_keeps_history(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user)

        assert post(client, permit, "approve", fireman_headers).status_code == 200
        resp = post(client, permit, "revoke", fireman_headers, reason="Gas alarm")
        assert resp.status_code == 200
        assert resp.json["permit"]["status"] == PermitStatus.REVOKED

        resp = post(client, permit, "reapprove", fireman_headers, comment="Area cleared", signature="data:sig")
        assert resp.status_code == 200
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.REAPPROVED
        assert [a["decision"] for a in body["approvals"]] == [
            ApprovalDecision.APPROVED,
            ApprovalDecision.REAPPROVED,
        ]
        assert body["approvals"][1]["signature"] == "data:sig"
        assert [(h["previous_status"], h["new_status"]) for h in body["action_history"]] == [
            (PermitStatus.PENDING, PermitStatus.APPROVED),
            (PermitStatus.APPROVED, PermitStatus.REVOKED),
            (PermitStatus.REVOKED, PermitStatus.REAPPROVED),
        ]

    def test_revoke_requires_reason(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        resp = post(client, permit, "revoke", fireman_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "A reason is required when revoking a permit"

    def test_reapprove_requires_key_for_custom_role(self, client, requestor_user, requestor_headers):
        permit = make_permit(requestor_user, status=PermitStatus.REVOKED)
        assert post(client, permit, "reapprove", requestor_headers).status_code == 403

        permission_service.grant_permission_override(
            user_id=requestor_user.id,
            permission_key="permits.reapprove",
            override_type="GRANT",
        )
        assert post(client, permit, "reapprove", requestor_headers).status_code == 200


class TestCloseAndRemarks:

    def test_manual_close(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.EXTENDED, extended_until=None)
        checklist = {"area_clean": True, "isolations_removed": True}
        resp = post(client, permit, "close", fireman_headers, comment="Job done", closure_checklist=checklist)
        assert resp.status_code == 200
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.CLOSED
        assert body["closed_at"] is not None
        assert body["auto_closed_at"] is None
        assert body["closure_checklist"] == checklist

    def test_closed_is_terminal(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.CLOSED)
        for action in ("close", "extend", "revoke", "reapprove"):
            assert post(client, permit, action, fireman_headers, reason="x").status_code == 409

    def test_remarks_on_closed_permit(self, client, requestor_user, fireman_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.CLOSED)
        resp = post(client, permit, "remarks", fireman_headers, remarks="Housekeeping was poor")
        assert resp.status_code == 200
        body = resp.json["permit"]
        assert body["status"] == PermitStatus.CLOSED
        assert body["safety_remarks"] == "Housekeeping was poor"
        assert body["remarks_added_by"] == fireman_user.full_name
        assert body["action_history"][-1]["action"] == "REMARKS_ADDED"

    def test_remarks_required(self, client, requestor_user, fireman_headers):
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        resp = post(client, permit, "remarks", fireman_headers, remarks="")
        assert resp.status_code == 400


class TestActionHistory:

    def test_history_endpoint(self, client, requestor_user, fireman_headers, requestor_headers):
        permit = make_permit(requestor_user)
        post(client, permit, "approve", fireman_headers)
        post(client, permit, "close", fireman_headers)

        resp = client.get(f"/api/permits/{permit.id}/action-history", headers=requestor_headers)
        assert resp.status_code == 200
        assert [h["action"] for h in resp.json["history"]] == ["APPROVED", "CLOSED"]

    def test_other_requestor_cannot_read_history(self, client, requestor_user, other_headers):
        permit = make_permit(requestor_user)
        resp = client.get(f"/api/permits/{permit.id}/action-history", headers=other_headers)
        assert resp.status_code == 403


class TestServiceWrappers:

    def test_wrappers_apply_transitions(self, app, requestor_user, fireman_user):
        authz = permission_service.get_authorization(fireman_user)
        permit = make_permit(requestor_user)

        lifecycle_service.approve_permit(permit.id, user=fireman_user, authz=authz)
        lifecycle_service.extend_permit(
            permit.id, user=fireman_user, authz=authz, extended_until=permit.end_date + timedelta(hours=1)
        )
        lifecycle_service.revoke_permit(permit.id, user=fireman_user, authz=authz, reason="Wind")
        lifecycle_service.reapprove_permit(permit.id, user=fireman_user, authz=authz)
        lifecycle_service.add_remarks(permit.id, user=fireman_user, authz=authz, remarks="Watch the wind")
        closed = lifecycle_service.close_permit(permit.id, user=fireman_user, authz=authz)

        assert closed.status == PermitStatus.CLOSED
        history = db.session.query(PermitActionHistory).filter_by(permit_id=permit.id).count()
        assert history == 6

    def test_reject_wrapper(self, app, requestor_user, fireman_user):
        authz = permission_service.get_authorization(fireman_user)
        permit = make_permit(requestor_user)
        rejected = lifecycle_service.reject_permit(permit.id, user=fireman_user, authz=authz, comment="Incomplete")
        assert rejected.status == PermitStatus.REJECTED

    def test_extend_with_aware_datetime(self, app, requestor_user, fireman_user):
        authz = permission_service.get_authorization(fireman_user)
        permit = make_permit(requestor_user, status=PermitStatus.APPROVED)
        new_end = (permit.end_date + timedelta(hours=2)).replace(microsecond=0)

        extended = lifecycle_service.extend_permit(
            permit.id, user=fireman_user, authz=authz, extended_until=new_end.replace(tzinfo=timezone.utc)
        )

        assert extended.status == PermitStatus.EXTENDED
        assert extended.extended_until == new_end
        assert extended.extended_until.tzinfo is None
