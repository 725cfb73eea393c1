# Overview: Service-layer operations for permits; encapsulates business logic and database work.

"""
Permit Service

Creation, editing, deletion and listing of permits. Status changes are NOT
made here; see lifecycle_service.py.

VISIBILITY:
- Principals with can_view_all_permits see every permit
- Everyone else sees only the permits they requested
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import Forbidden, NotFound, ValidationFailed
from ..extensions import db
from ..lifecycle import PermitStatus, can_delete_permit, can_edit_permit, validate_status
from ..models import Permit, PermitSequence, User
from ..permissions import AuthorizationModel
from ..validation import WORK_TYPES, validate_permit_payload
from . import permission_service
from .concurrency import run_with_retry
from permitflow.time_utils import month_abbreviation, utcnow


MAX_PAGE_SIZE = 100


def list_work_types() -> list[dict]:
    return [wt.to_dict() for wt in WORK_TYPES]


def next_permit_number(*, prefix: str | None = None, now=None) -> str:
    """
    Atomically allocate the next permit number for the current month.

    Format: "<PREFIX> <MON> <YYYY> - <NNNN>", e.g. "PTW JAN 2026 - 0001".
    The sequence restarts at 0001 every calendar month.
    """
    prefix = prefix or current_app.config.get("PERMIT_NUMBER_PREFIX", "PTW")
    now = now or utcnow()
    period = f"{month_abbreviation(now)} {now.year}"

    stmt = (
        update(PermitSequence)
        .where(PermitSequence.prefix == prefix, PermitSequence.period == period)
        .values(next_number=PermitSequence.next_number + 1)
    )

    def _current() -> int:
        return (
            db.session.query(PermitSequence.next_number)
            .filter_by(prefix=prefix, period=period)
            .scalar()
        )

    def _op() -> str:
        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            number = _current() - 1
        else:
            db.session.add(PermitSequence(prefix=prefix, period=period, next_number=2))
            try:
                db.session.flush()
                number = 1
            except IntegrityError:
                db.session.rollback()
                if not db.session.execute(stmt).rowcount:
                    raise
                db.session.flush()
                number = _current() - 1

        return f"{prefix} {period} - {number:04d}"

    return run_with_retry(_op)


def _visible_query(authz: AuthorizationModel):
    query = db.session.query(Permit)
    if not authz.can_view_all_permits():
        query = query.filter(Permit.created_by_id == authz.principal.id)
    return query


def get_permit(permit_id: int, authz: AuthorizationModel | None = None) -> Permit:
    """
    Fetch a permit by id.

    When an AuthorizationModel is given, requestors may only read their own
    permits.
    """
    permit = db.session.get(Permit, permit_id)
    if permit is None:
        raise NotFound("Permit not found")

    if authz is not None and not authz.can_view_all_permits() and not authz.is_owner(permit.created_by_id):
        raise Forbidden("Access denied")

    return permit


def list_permits(
    authz: AuthorizationModel,
    *,
    status: str | None = None,
    work_type: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """
    Paginated permit listing filtered by status, work type and free-text search.

    Returns {"permits": [...], "pagination": {...}}.
    """
    query = _visible_query(authz)

    if status:
        validate_status(status)
        query = query.filter(Permit.status == status)

    if work_type:
        query = query.filter(Permit.work_type == work_type.upper())

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Permit.title.ilike(pattern),
            Permit.description.ilike(pattern),
            Permit.location.ilike(pattern),
            Permit.permit_number.ilike(pattern),
        ))

    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    total = query.count()
    permits = (
        query.order_by(Permit.created_at.desc(), Permit.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "permits": [p.to_dict(include_history=False) for p in permits],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
    }


def create_permit(data: dict, *, user: User, authz: AuthorizationModel) -> Permit:
    """
    Submit a new permit in PENDING status.

    Raises:
        Forbidden: principal cannot create permits
        ValidationFailed: payload is incomplete or inconsistent
    """
    permission_service.require_capability(authz, "can_create_permits", resource="permits")

    cleaned = validate_permit_payload(data)

    permit = Permit(
        permit_number=next_permit_number(),
        status=PermitStatus.PENDING,
        created_by_id=user.id,
        **cleaned,
    )
    db.session.add(permit)
    db.session.commit()

    permission_service.log_audit_event(
        user_id=user.id,
        event_type="PERMIT_CREATED",
        success=True,
        resource=f"permit:{permit.id}",
        action="CREATE",
        reason=permit.permit_number,
    )
    current_app.logger.info("Permit %s created by user %s", permit.permit_number, user.id)
    return permit


def update_permit(permit_id: int, data: dict, *, user: User, authz: AuthorizationModel) -> Permit:
    """
    Edit a permit's request details.

    Only PENDING permits may be edited (administrators may edit any), and a
    requester only their own. Status and lifecycle fields are not writable.
    """
    permit = get_permit(permit_id, authz)

    if not can_edit_permit(authz, permit.snapshot()):
        if permit.status != PermitStatus.PENDING:
            raise ValidationFailed("Only pending permits can be edited")
        raise Forbidden("You can only edit your own pending permits")

    cleaned = validate_permit_payload(data, partial=True)

    start = cleaned.get("start_date", permit.start_date)
    end = cleaned.get("end_date", permit.end_date)
    if end <= start:
        raise ValidationFailed("end_date must be after start_date")

    for key, value in cleaned.items():
        setattr(permit, key, value)

    db.session.commit()

    permission_service.log_audit_event(
        user_id=user.id,
        event_type="PERMIT_UPDATED",
        success=True,
        resource=f"permit:{permit.id}",
        action="UPDATE",
        reason=", ".join(sorted(cleaned)),
    )
    return permit


def delete_permit(permit_id: int, *, user: User, authz: AuthorizationModel) -> None:
    """
    Delete a permit.

    Allowed by the delete capability, or for the requester's own PENDING permit.
    """
    permit = get_permit(permit_id)

    if not can_delete_permit(authz, permit.snapshot()):
        permission_service.log_audit_event(
            user_id=user.id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=f"permit:{permit.id}",
            action="can_delete_permits",
            reason="Delete requires permits.delete or an own pending permit",
        )
        raise Forbidden("You are not allowed to delete this permit")

    permit_number = permit.permit_number
    db.session.delete(permit)
    db.session.commit()

    permission_service.log_audit_event(
        user_id=user.id,
        event_type="PERMIT_DELETED",
        success=True,
        resource=f"permit:{permit_id}",
        action="DELETE",
        reason=permit_number,
    )
