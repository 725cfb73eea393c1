# Overview: Service-layer operations for lifecycle; encapsulates business logic and database work.

"""
Permit Lifecycle Service

================================================================================
PURPOSE: Apply permit transitions authoritatively
================================================================================

The rules live in permitflow.lifecycle (the same table the client consults).
This module applies them against the database:

1. Lock and re-read the permit inside the transaction.
2. Re-validate state, capability and input with validate_transition().
3. Apply the status change and its side effects.
4. Append an approval record (approve / reject / reapprove) and an
   action-history entry. Neither is ever updated afterwards.
5. Commit once. A failed check leaves the permit untouched.

Two approvers acting on the same permit at once are serialized by the row
lock (or, on SQLite, by the database write lock): the second one re-reads
the new status and receives InvalidTransition.

AUTO-CLOSE: APPROVED / EXTENDED / REAPPROVED permits whose effective end has
passed are closed by the scheduler. This writes closed_at, auto_closed_at and
an AUTO_CLOSED history entry, and never creates an approval record.
================================================================================
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..lifecycle import (
    ACTIVE_STATUSES,
    ApprovalDecision,
    PermitAction,
    PermitStatus,
    is_due_for_auto_close,
    validate_transition,
)
from ..models import Permit, PermitActionHistory, PermitApproval, User
from ..permissions import AuthorizationModel
from . import permission_service
from .concurrency import lock_for_update, run_with_retry
from ..time_utils import parse_iso_seconds, utcnow


AUTO_CLOSED = "AUTO_CLOSED"


def _load_for_update(permit_id: int) -> Permit:
    permit = lock_for_update(db.session.query(Permit).filter_by(id=permit_id)).first()
    if permit is None:
        raise NotFound("Permit not found")
    return permit


def _actor_fields(user: User | None, authz: AuthorizationModel | None) -> dict:
    if user is None:
        return {"id": None, "name": "System", "role": None}
    role = authz.principal.role if authz is not None and authz.principal is not None else None
    return {"id": user.id, "name": user.full_name, "role": role}


def apply_transition(
    permit_id: int,
    action: str,
    *,
    user: User,
    authz: AuthorizationModel,
    comment: str | None = None,
    signature: str | None = None,
    extended_until=None,
    closure_checklist: dict | list | None = None,
) -> Permit:
    """
    Validate and apply one workflow action to a permit.

    Args:
        permit_id: Permit to act on
        action: One of PermitAction
        user: Authenticated actor (taken from the session, never the body)
        authz: The actor's AuthorizationModel
        comment: Decision comment, revoke reason or safety remarks
        signature: Optional signature payload (approve / reapprove)
        extended_until: New end for extend (datetime or ISO string)
        closure_checklist: Optional checklist recorded on close

    Returns:
        The updated permit

    Raises:
        NotFound: permit does not exist
        InvalidTransition: action is not legal from the current status
        Forbidden: actor lacks the capability for the action
        ValidationFailed: missing comment/remarks or bad extension
    """
    if extended_until is not None:
        try:
            extended_until = parse_iso_seconds(extended_until)
        except (TypeError, ValueError):
            raise ValidationFailed("extended_until must be an ISO-8601 datetime")

    comment = comment.strip() if isinstance(comment, str) else comment

    def _op() -> Permit:
        permit = _load_for_update(permit_id)

        transition = validate_transition(
            authz,
            permit.snapshot(),
            action,
            comment=comment,
            extended_until=extended_until,
        )

        now = utcnow()
        actor = _actor_fields(user, authz)
        previous_status = permit.status

        if action == PermitAction.EXTEND:
            permit.is_extended = True
            permit.extended_until = extended_until
        elif action == PermitAction.CLOSE:
            permit.closed_at = now
            if closure_checklist is not None:
                permit.closure_checklist = closure_checklist
        elif action == PermitAction.ADD_REMARKS:
            permit.safety_remarks = comment
            permit.remarks_added_by_id = user.id
            permit.remarks_added_at = now

        if transition.next_status is not None:
            permit.status = transition.next_status

        if transition.creates_approval is not None:
            db.session.add(PermitApproval(
                permit_id=permit.id,
                approver_id=actor["id"],
                approver_name=actor["name"],
                approver_role=actor["role"],
                decision=transition.creates_approval,
                comment=comment or None,
                signature=signature,
                decided_at=now,
            ))

        db.session.add(PermitActionHistory(
            permit_id=permit.id,
            action=transition.history_label,
            performed_by_id=actor["id"],
            performed_by_name=actor["name"],
            performed_by_role=actor["role"],
            comment=comment or None,
            previous_status=previous_status,
            new_status=permit.status,
            signature=signature,
            created_at=now,
        ))

        db.session.commit()
        return permit

    try:
        permit = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Permit %s: %s by user %s -> %s", permit.permit_number, action, user.id, permit.status
    )
    return permit


def approve_permit(permit_id: int, *, user: User, authz: AuthorizationModel,
                   comment: str | None = None, signature: str | None = None) -> Permit:
    return apply_transition(permit_id, PermitAction.APPROVE, user=user, authz=authz,
                            comment=comment, signature=signature)


def reject_permit(permit_id: int, *, user: User, authz: AuthorizationModel, comment: str | None) -> Permit:
    return apply_transition(permit_id, PermitAction.REJECT, user=user, authz=authz, comment=comment)


def extend_permit(permit_id: int, *, user: User, authz: AuthorizationModel,
                  extended_until, reason: str | None = None) -> Permit:
    return apply_transition(permit_id, PermitAction.EXTEND, user=user, authz=authz,
                            comment=reason, extended_until=extended_until)


def revoke_permit(permit_id: int, *, user: User, authz: AuthorizationModel, reason: str | None) -> Permit:
    return apply_transition(permit_id, PermitAction.REVOKE, user=user, authz=authz, comment=reason)


def reapprove_permit(permit_id: int, *, user: User, authz: AuthorizationModel,
                     comment: str | None = None, signature: str | None = None) -> Permit:
    return apply_transition(permit_id, PermitAction.REAPPROVE, user=user, authz=authz,
                            comment=comment, signature=signature)


def close_permit(permit_id: int, *, user: User, authz: AuthorizationModel,
                 comment: str | None = None, closure_checklist=None) -> Permit:
    return apply_transition(permit_id, PermitAction.CLOSE, user=user, authz=authz,
                            comment=comment, closure_checklist=closure_checklist)


def add_remarks(permit_id: int, *, user: User, authz: AuthorizationModel, remarks: str | None) -> Permit:
    return apply_transition(permit_id, PermitAction.ADD_REMARKS, user=user, authz=authz, comment=remarks)


def auto_close_expired(now: datetime | None = None) -> list[Permit]:
    """
    Close every active permit whose effective end has passed.

    Idempotent: a permit that is already closed is skipped. No approval
    records are created.

    Returns:
        The permits closed by this run
    """
    now = now or utcnow()

    candidates = (
        lock_for_update(
            db.session.query(Permit).filter(
                Permit.status.in_(ACTIVE_STATUSES),
                Permit.closed_at.is_(None),
                db.func.coalesce(Permit.extended_until, Permit.end_date) <= now,
            )
        )
        .order_by(Permit.id)
        .all()
    )

    closed = []
    for permit in candidates:
        if not is_due_for_auto_close(permit.snapshot(), now):
            continue

        previous_status = permit.status
        permit.status = PermitStatus.CLOSED
        permit.closed_at = now
        permit.auto_closed_at = now

        db.session.add(PermitActionHistory(
            permit_id=permit.id,
            action=AUTO_CLOSED,
            performed_by_id=None,
            performed_by_name="System",
            comment="Permit automatically closed after its end time",
            previous_status=previous_status,
            new_status=PermitStatus.CLOSED,
            created_at=now,
        ))
        closed.append(permit)

    db.session.commit()

    if closed:
        current_app.logger.info(
            "Auto-closed %d permit(s): %s", len(closed), ", ".join(p.permit_number for p in closed)
        )
        permission_service.log_audit_event(
            user_id=None,
            event_type="PERMITS_AUTO_CLOSED",
            success=True,
            resource="permits",
            action="AUTO_CLOSE",
            reason=", ".join(p.permit_number for p in closed),
        )
    return closed


def get_action_history(permit_id: int) -> list[PermitActionHistory]:
    if db.session.get(Permit, permit_id) is None:
        raise NotFound("Permit not found")
    return (
        db.session.query(PermitActionHistory)
        .filter_by(permit_id=permit_id)
        .order_by(PermitActionHistory.id)
        .all()
    )


def list_approvals(*, decision: str | None = None, limit: int = 100) -> list[PermitApproval]:
    query = db.session.query(PermitApproval)
    if decision:
        query = query.filter(PermitApproval.decision == decision.upper())
    return query.order_by(PermitApproval.decided_at.desc(), PermitApproval.id.desc()).limit(limit).all()


def pending_count() -> int:
    """Permits waiting for a first decision."""
    return db.session.query(Permit).filter_by(status=PermitStatus.PENDING).count()


def pending_remarks(now: datetime | None = None) -> list[Permit]:
    """Permits past their end time that have no safety remarks yet."""
    now = now or utcnow()
    return (
        db.session.query(Permit)
        .filter(
            Permit.status.in_(ACTIVE_STATUSES | {PermitStatus.CLOSED, PermitStatus.PENDING_REMARKS}),
            Permit.safety_remarks.is_(None),
            db.func.coalesce(Permit.extended_until, Permit.end_date) <= now,
        )
        .order_by(Permit.end_date)
        .all()
    )


def approval_stats() -> dict:
    """Decision counts and approval rate (approved / decided, in percent)."""
    counts = dict(
        db.session.query(PermitApproval.decision, db.func.count(PermitApproval.id))
        .group_by(PermitApproval.decision)
        .all()
    )
    approved = counts.get(ApprovalDecision.APPROVED, 0)
    rejected = counts.get(ApprovalDecision.REJECTED, 0)
    reapproved = counts.get(ApprovalDecision.REAPPROVED, 0)
    pending = pending_count()
    decided = approved + rejected

    recent = (
        db.session.query(PermitApproval)
        .order_by(PermitApproval.decided_at.desc(), PermitApproval.id.desc())
        .limit(5)
        .all()
    )

    return {
        "stats": {
            "pending": pending,
            "approved": approved,
            "rejected": rejected,
            "reapproved": reapproved,
            "total": pending + approved + rejected,
            "approval_rate": round(approved / decided * 100, 1) if decided else 0,
        },
        "recent_approvals": [a.to_dict(include_permit=True) for a in recent],
    }
