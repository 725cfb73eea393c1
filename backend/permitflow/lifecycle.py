# Overview: Permit state machine table and transition validation shared by server and client.

"""
Permit Lifecycle

================================================================================
PURPOSE: Single source of truth for which workflow actions exist for a permit
in a given status, who may perform them, and what input they require.
================================================================================

STATE MACHINE:

    PENDING ──approve──> APPROVED ──extend──> EXTENDED ──extend──> EXTENDED
       │                    │  │                 │
       └──reject──> REJECTED│  └──revoke──> REVOKED ──reapprove──> REAPPROVED
                            │                                       │
                            └──────close / auto-close──> CLOSED <───┘

    Terminal: CLOSED, REJECTED
    PENDING_REMARKS: legacy status; may still be closed or annotated.

RULES:
1. Only actions listed in TRANSITIONS are legal; everything else is an
   InvalidTransition.
2. Every user action names the capability the actor must hold.
3. Reject and revoke require a non-empty comment; remarks require text.
4. Extension must end strictly after the current effective end
   (the later of end_date and extended_until).
5. Auto-close is not a user action: it is applied by the scheduler once the
   effective end has passed and never creates an approval record.

The table is consulted twice: by the client to decide which actions to offer
and to refuse bad input before any request is sent, and by the authority to
re-validate inside the database transaction.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .errors import Forbidden, InvalidTransition, ValidationFailed
from .permissions.capabilities import AuthorizationModel
from .time_utils import parse_iso_datetime


class PermitStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXTENDED = "EXTENDED"
    REVOKED = "REVOKED"
    REAPPROVED = "REAPPROVED"
    CLOSED = "CLOSED"
    PENDING_REMARKS = "PENDING_REMARKS"


VALID_STATUSES = frozenset({
    PermitStatus.PENDING,
    PermitStatus.APPROVED,
    PermitStatus.REJECTED,
    PermitStatus.EXTENDED,
    PermitStatus.REVOKED,
    PermitStatus.REAPPROVED,
    PermitStatus.CLOSED,
    PermitStatus.PENDING_REMARKS,
})

TERMINAL_STATUSES = frozenset({PermitStatus.CLOSED, PermitStatus.REJECTED})

# Statuses in which the permit authorizes work on site
ACTIVE_STATUSES = frozenset({
    PermitStatus.APPROVED,
    PermitStatus.EXTENDED,
    PermitStatus.REAPPROVED,
})


class PermitAction:
    APPROVE = "approve"
    REJECT = "reject"
    EXTEND = "extend"
    REVOKE = "revoke"
    REAPPROVE = "reapprove"
    CLOSE = "close"
    ADD_REMARKS = "remarks"


class ApprovalDecision:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REAPPROVED = "REAPPROVED"


@dataclass(frozen=True)
class Transition:
    action: str
    next_status: Optional[str]  # None: status is left unchanged
    capability: str
    comment_required: bool = False
    creates_approval: Optional[str] = None  # decision recorded, if any
    history_label: str = ""


def _build_table() -> dict:
    table = {}

    def add(sources, transition):
        for status in sources:
            table[(status, transition.action)] = transition

    add([PermitStatus.PENDING], Transition(
        PermitAction.APPROVE, PermitStatus.APPROVED, "can_approve",
        creates_approval=ApprovalDecision.APPROVED, history_label="APPROVED",
    ))
    add([PermitStatus.PENDING], Transition(
        PermitAction.REJECT, PermitStatus.REJECTED, "can_approve",
        comment_required=True, creates_approval=ApprovalDecision.REJECTED,
        history_label="REJECTED",
    ))
    add(ACTIVE_STATUSES, Transition(
        PermitAction.EXTEND, PermitStatus.EXTENDED, "can_extend_permits",
        history_label="EXTENDED",
    ))
    add(ACTIVE_STATUSES, Transition(
        PermitAction.REVOKE, PermitStatus.REVOKED, "can_revoke_permits",
        comment_required=True, history_label="REVOKED",
    ))
    add([PermitStatus.REVOKED], Transition(
        PermitAction.REAPPROVE, PermitStatus.REAPPROVED, "can_reapprove",
        creates_approval=ApprovalDecision.REAPPROVED, history_label="REAPPROVED",
    ))
    add(ACTIVE_STATUSES | {PermitStatus.PENDING_REMARKS}, Transition(
        PermitAction.CLOSE, PermitStatus.CLOSED, "can_close_permits",
        history_label="CLOSED",
    ))
    add(ACTIVE_STATUSES | {PermitStatus.PENDING_REMARKS, PermitStatus.CLOSED}, Transition(
        PermitAction.ADD_REMARKS, None, "can_approve",
        comment_required=True, history_label="REMARKS_ADDED",
    ))
    return table


TRANSITIONS = _build_table()

ACTION_ORDER = (
    PermitAction.APPROVE,
    PermitAction.REJECT,
    PermitAction.EXTEND,
    PermitAction.REVOKE,
    PermitAction.REAPPROVE,
    PermitAction.CLOSE,
    PermitAction.ADD_REMARKS,
)


@dataclass(frozen=True)
class PermitSnapshot:
    """The fields of a permit that the lifecycle rules look at."""
    id: Any
    status: str
    end_date: Optional[datetime]
    extended_until: Optional[datetime] = None
    created_by: Any = None

    @classmethod
    def from_dict(cls, payload: dict) -> "PermitSnapshot":
        return cls(
            id=payload.get("id"),
            status=payload.get("status"),
            end_date=parse_iso_datetime(payload.get("end_date")),
            extended_until=parse_iso_datetime(payload.get("extended_until")),
            created_by=payload.get("created_by"),
        )


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise ValidationFailed(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def effective_end(end_date: Optional[datetime], extended_until: Optional[datetime]) -> Optional[datetime]:
    """The later of the scheduled end and the latest extension."""
    if end_date is None:
        return extended_until
    if extended_until is None:
        return end_date
    return max(end_date, extended_until)


def snapshot_effective_end(permit: PermitSnapshot) -> Optional[datetime]:
    return effective_end(permit.end_date, permit.extended_until)


def get_transition(status: str, action: str) -> Optional[Transition]:
    return TRANSITIONS.get((status, action))


def can_transition(status: str, action: str) -> bool:
    return (status, action) in TRANSITIONS


def available_actions(authz: AuthorizationModel, permit: PermitSnapshot) -> list:
    """Actions the principal may offer for this permit, in display order."""
    actions = []
    for action in ACTION_ORDER:
        transition = get_transition(permit.status, action)
        if transition is not None and authz.check(transition.capability):
            actions.append(action)
    return actions


def validate_transition(
    authz: AuthorizationModel,
    permit: PermitSnapshot,
    action: str,
    *,
    comment: Optional[str] = None,
    extended_until: Optional[datetime] = None,
) -> Transition:
    """
    Check a proposed transition before it is applied or sent.

    Order of checks: state precondition, capability, then input.

    Raises:
        InvalidTransition: action is not legal from the permit's status
        Forbidden: principal lacks the transition's capability
        ValidationFailed: missing comment/remarks or a non-increasing extension
    """
    transition = get_transition(permit.status, action)
    if transition is None:
        raise InvalidTransition(
            f"Cannot {action} permit {permit.id}: current status is '{permit.status}'"
        )

    if not authz.check(transition.capability):
        raise Forbidden(f"Permission denied: {transition.capability}")

    if transition.comment_required and not (comment or "").strip():
        if action == PermitAction.REJECT:
            raise ValidationFailed("A comment is required when rejecting a permit")
        if action == PermitAction.REVOKE:
            raise ValidationFailed("A reason is required when revoking a permit")
        raise ValidationFailed("Safety remarks are required")

    if action == PermitAction.EXTEND:
        if extended_until is None:
            raise ValidationFailed("extended_until is required")
        current_end = snapshot_effective_end(permit)
        if current_end is not None and extended_until <= current_end:
            raise ValidationFailed(
                "Extension must end strictly after the current end of the permit"
            )

    return transition


def is_due_for_auto_close(permit: PermitSnapshot, now: datetime) -> bool:
    if permit.status not in ACTIVE_STATUSES:
        return False
    end = snapshot_effective_end(permit)
    return end is not None and end <= now


def can_delete_permit(authz: AuthorizationModel, permit: PermitSnapshot) -> bool:
    """
    Deletion is allowed by the delete capability (explicit `permits.delete`
    or a privileged role), or to the requester while the permit is pending.
    """
    if authz.can_delete_permits():
        return True
    return authz.is_owner(permit.created_by) and permit.status == PermitStatus.PENDING


def can_edit_permit(authz: AuthorizationModel, permit: PermitSnapshot) -> bool:
    """Pending permits may be edited by their requester or an editor; admins may edit any."""
    if authz.is_admin:
        return True
    if permit.status != PermitStatus.PENDING:
        return False
    if authz.can_edit_permits():
        return True
    return authz.is_owner(permit.created_by) and authz.has_permission("permits.edit_own")
