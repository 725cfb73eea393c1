"""
Permit state machine tests (no database).

Verifies:
- The transition table matches the documented workflow
- validate_transition checks state, then capability, then input
- Extensions must end strictly after the current effective end
- Auto-close eligibility
"""

from datetime import datetime, timedelta

import pytest

from permitflow.errors import Forbidden, InvalidTransition, ValidationFailed
from permitflow.lifecycle import (
    ACTIVE_STATUSES,
    ApprovalDecision,
    PermitAction,
    PermitSnapshot,
    PermitStatus,
    TRANSITIONS,
    available_actions,
    can_edit_permit,
    can_transition,
    effective_end,
    get_transition,
    is_due_for_auto_close,
    is_terminal,
    validate_transition,
)
from permitflow.permissions import AuthorizationModel, Principal


pytestmark = pytest.mark.lifecycle

END = datetime(2026, 3, 1, 18, 0)

ADMIN = AuthorizationModel(Principal.build(1, "ADMIN"))
FIREMAN = AuthorizationModel(Principal.build(2, "FIREMAN"))
REQUESTOR = AuthorizationModel(Principal.build(3, "REQUESTOR", ["permits.create", "permits.edit_own"]))


def snapshot(status, *, end=END, extended_until=None, created_by=3):
    return PermitSnapshot(id=10, status=status, end_date=end, extended_until=extended_until, created_by=created_by)


class TestTransitionTable:

    @pytest.mark.parametrize(
        "status,action,expected",
        [
            (PermitStatus.PENDING, PermitAction.APPROVE, PermitStatus.APPROVED),
            (PermitStatus.PENDING, PermitAction.REJECT, PermitStatus.REJECTED),
            (PermitStatus.APPROVED, PermitAction.EXTEND, PermitStatus.EXTENDED),
            (PermitStatus.EXTENDED, PermitAction.EXTEND, PermitStatus.EXTENDED),
            (PermitStatus.REAPPROVED, PermitAction.REVOKE, PermitStatus.REVOKED),
            (PermitStatus.REVOKED, PermitAction.REAPPROVE, PermitStatus.REAPPROVED),
            (PermitStatus.APPROVED, PermitAction.CLOSE, PermitStatus.CLOSED),
            (PermitStatus.PENDING_REMARKS, PermitAction.CLOSE, PermitStatus.CLOSED),
        ],
    )
    def test_next_status(self, status, action, expected):
        assert get_transition(status, action).next_status == expected

    @pytest.mark.parametrize("status", [PermitStatus.CLOSED, PermitStatus.REJECTED])
    def test_terminal_states_only_accept_remarks(self, status):
        assert is_terminal(status)
        allowed = {action for (source, action) in TRANSITIONS if source == status}
        assert allowed <= {PermitAction.ADD_REMARKS}

    def test_remarks_leave_status_unchanged(self):
        assert get_transition(PermitStatus.CLOSED, PermitAction.ADD_REMARKS).next_status is None

    def test_decisions_create_approval_records(self):
        assert get_transition(PermitStatus.PENDING, PermitAction.APPROVE).creates_approval == ApprovalDecision.APPROVED
        assert get_transition(PermitStatus.PENDING, PermitAction.REJECT).creates_approval == ApprovalDecision.REJECTED
        assert get_transition(PermitStatus.REVOKED, PermitAction.REAPPROVE).creates_approval == ApprovalDecision.REAPPROVED
        assert get_transition(PermitStatus.APPROVED, PermitAction.CLOSE).creates_approval is None

    @pytest.mark.parametrize("action", [PermitAction.APPROVE, PermitAction.EXTEND, PermitAction.CLOSE])
    def test_revoked_permit_only_reapproves(self, action):
        assert get_transition(PermitStatus.REVOKED, action) is None


class TestAvailableActions:

    def test_fireman_on_pending(self):
        assert available_actions(FIREMAN, snapshot(PermitStatus.PENDING)) == [
            PermitAction.APPROVE,
            PermitAction.REJECT,
        ]

    def test_fireman_on_approved(self):
        actions = available_actions(FIREMAN, snapshot(PermitStatus.APPROVED))
        assert actions == [
            PermitAction.EXTEND,
            PermitAction.REVOKE,
            PermitAction.CLOSE,
            PermitAction.ADD_REMARKS,
        ]

    def test_requestor_gets_nothing(self):
        for status in (PermitStatus.PENDING, PermitStatus.APPROVED, PermitStatus.REVOKED):
            assert available_actions(REQUESTOR, snapshot(status)) == []

    def test_unauthenticated_gets_nothing(self):
        assert available_actions(AuthorizationModel(None), snapshot(PermitStatus.PENDING)) == []


class TestValidateTransition:

    def test_approve_pending(self):
        transition = validate_transition(FIREMAN, snapshot(PermitStatus.PENDING), PermitAction.APPROVE)
        assert transition.next_status == PermitStatus.APPROVED

    def test_approve_closed_is_invalid(self):
        with pytest.raises(InvalidTransition):
            validate_transition(ADMIN, snapshot(PermitStatus.CLOSED), PermitAction.APPROVE)

    def test_state_is_checked_before_capability(self):
        with pytest.raises(InvalidTransition):
            validate_transition(REQUESTOR, snapshot(PermitStatus.CLOSED), PermitAction.APPROVE)

    def test_requestor_cannot_approve(self):
        with pytest.raises(Forbidden):
            validate_transition(REQUESTOR, snapshot(PermitStatus.PENDING), PermitAction.APPROVE)

    @pytest.mark.parametrize("comment", [None, "", "   "])
    def test_reject_requires_comment(self, comment):
        with pytest.raises(ValidationFailed, match="comment is required"):
            validate_transition(FIREMAN, snapshot(PermitStatus.PENDING), PermitAction.REJECT, comment=comment)

    def test_revoke_requires_reason(self):
        with pytest.raises(ValidationFailed, match="reason is required"):
            validate_transition(FIREMAN, snapshot(PermitStatus.APPROVED), PermitAction.REVOKE)

    def test_remarks_required(self):
        with pytest.raises(ValidationFailed, match="remarks"):
            validate_transition(FIREMAN, snapshot(PermitStatus.CLOSED), PermitAction.ADD_REMARKS, comment=" ")

    def test_reapprove_comment_optional(self):
        validate_transition(FIREMAN, snapshot(PermitStatus.REVOKED), PermitAction.REAPPROVE)

    def test_extend_requires_date(self):
        with pytest.raises(ValidationFailed, match="extended_until is required"):
            validate_transition(FIREMAN, snapshot(PermitStatus.APPROVED), PermitAction.EXTEND)

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(minutes=-30)])
    def test_extend_not_strictly_later(self, delta):
        with pytest.raises(ValidationFailed, match="strictly after"):
            validate_transition(
                FIREMAN,
                snapshot(PermitStatus.APPROVED),
                PermitAction.EXTEND,
                extended_until=END + delta,
            )

    def test_extend_compares_against_latest_extension(self):
        extended = snapshot(PermitStatus.EXTENDED, extended_until=END + timedelta(hours=4))
        with pytest.raises(ValidationFailed):
            validate_transition(FIREMAN, extended, PermitAction.EXTEND, extended_until=END + timedelta(hours=2))
        validate_transition(FIREMAN, extended, PermitAction.EXTEND, extended_until=END + timedelta(hours=5))


class TestEffectiveEnd:

    def test_later_of_end_and_extension(self):
        assert effective_end(END, None) == END
        assert effective_end(END, END + timedelta(hours=1)) == END + timedelta(hours=1)
        assert effective_end(END, END - timedelta(hours=1)) == END


class TestAutoCloseEligibility:

    @pytest.mark.parametrize("status", sorted(ACTIVE_STATUSES))
    def test_active_past_end(self, status):
        assert is_due_for_auto_close(snapshot(status), END + timedelta(seconds=1))
        assert is_due_for_auto_close(snapshot(status), END)

    def test_not_before_end(self):
        assert not is_due_for_auto_close(snapshot(PermitStatus.APPROVED), END - timedelta(minutes=1))

    def test_uses_extension(self):
        permit = snapshot(PermitStatus.EXTENDED, extended_until=END + timedelta(hours=2))
        assert not is_due_for_auto_close(permit, END + timedelta(hours=1))

    @pytest.mark.parametrize("status", [PermitStatus.PENDING, PermitStatus.REVOKED, PermitStatus.CLOSED])
    def test_inactive_statuses_never_auto_close(self, status):
        assert not is_due_for_auto_close(snapshot(status), END + timedelta(days=1))


class TestEditRules:

    def test_owner_edits_pending(self):
        assert can_edit_permit(REQUESTOR, snapshot(PermitStatus.PENDING))

    def test_owner_cannot_edit_approved(self):
        assert not can_edit_permit(REQUESTOR, snapshot(PermitStatus.APPROVED))

    def test_admin_edits_anything(self):
        assert can_edit_permit(ADMIN, snapshot(PermitStatus.APPROVED, created_by=99))


def test_can_transition():
    assert can_transition(PermitStatus.PENDING, PermitAction.APPROVE)
    assert not can_transition(PermitStatus.PENDING, PermitAction.CLOSE)
    assert not can_transition("ARCHIVED", PermitAction.APPROVE)
