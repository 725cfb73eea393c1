from __future__ import annotations

from ..extensions import db
from permitflow.lifecycle import PermitSnapshot, PermitStatus, effective_end
from permitflow.time_utils import to_utc_z


class Permit(db.Model):
    """
    Work-authorization record governed by the permit lifecycle.

    Status changes happen only through lifecycle_service, which records an
    approval row and/or an action-history row for every transition.

    Workers, hazards, precautions and equipment are stored as JSON arrays;
    they are validated as a whole on create/update (see validation.py).
    """
    __tablename__ = "permits"
    __table_args__ = (
        db.Index("ix_permits_status_end", "status", "end_date"),
        db.Index("ix_permits_created_by", "created_by_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "PTW JAN 2026 - 0001", sequence restarts every month
    permit_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=False)
    work_type = db.Column(db.String(32), nullable=False, index=True)
    priority = db.Column(db.String(16), nullable=False, default="MEDIUM")
    status = db.Column(db.String(32), nullable=False, default=PermitStatus.PENDING, index=True)

    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    timezone = db.Column(db.String(64), nullable=False, default="UTC")

    is_extended = db.Column(db.Boolean, nullable=False, default=False)
    extended_until = db.Column(db.DateTime(timezone=True), nullable=True)

    contractor_name = db.Column(db.String(255), nullable=True)
    contractor_phone = db.Column(db.String(32), nullable=True)
    company_name = db.Column(db.String(255), nullable=True)

    workers = db.Column(db.JSON, nullable=False, default=list)
    hazards = db.Column(db.JSON, nullable=False, default=list)
    precautions = db.Column(db.JSON, nullable=False, default=list)
    equipment = db.Column(db.JSON, nullable=False, default=list)
    declaration_accepted = db.Column(db.Boolean, nullable=False, default=False)

    # Safety remarks left by an approver before/after closure
    safety_remarks = db.Column(db.Text, nullable=True)
    remarks_added_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    remarks_added_at = db.Column(db.DateTime(timezone=True), nullable=True)

    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    auto_closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closure_checklist = db.Column(db.JSON, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    created_by = db.relationship("User", foreign_keys=[created_by_id], backref=db.backref("permits", lazy=True))
    remarks_added_by = db.relationship("User", foreign_keys=[remarks_added_by_id])

    approvals = db.relationship(
        "PermitApproval",
        back_populates="permit",
        cascade="all, delete-orphan",
        order_by="PermitApproval.id",
        lazy=True,
    )
    action_history = db.relationship(
        "PermitActionHistory",
        back_populates="permit",
        cascade="all, delete-orphan",
        order_by="PermitActionHistory.id",
        lazy=True,
    )

    @property
    def effective_end(self):
        return effective_end(self.end_date, self.extended_until)

    def snapshot(self) -> PermitSnapshot:
        return PermitSnapshot(
            id=self.id,
            status=self.status,
            end_date=self.end_date,
            extended_until=self.extended_until,
            created_by=self.created_by_id,
        )

    def to_dict(self, *, include_history: bool = True) -> dict:
        payload = {
            "id": self.id,
            "permit_number": self.permit_number,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "work_type": self.work_type,
            "priority": self.priority,
            "status": self.status,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "timezone": self.timezone,
            "is_extended": self.is_extended,
            "extended_until": to_utc_z(self.extended_until),
            "effective_end": to_utc_z(self.effective_end),
            "contractor_name": self.contractor_name,
            "contractor_phone": self.contractor_phone,
            "company_name": self.company_name,
            "workers": list(self.workers or []),
            "hazards": list(self.hazards or []),
            "precautions": list(self.precautions or []),
            "equipment": list(self.equipment or []),
            "declaration_accepted": self.declaration_accepted,
            "safety_remarks": self.safety_remarks,
            "remarks_added_by": self.remarks_added_by.full_name if self.remarks_added_by else None,
            "remarks_added_at": to_utc_z(self.remarks_added_at),
            "closed_at": to_utc_z(self.closed_at),
            "auto_closed_at": to_utc_z(self.auto_closed_at),
            "closure_checklist": self.closure_checklist,
            "created_by": self.created_by_id,
            "created_by_name": self.created_by.full_name if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            payload["approvals"] = [a.to_dict() for a in self.approvals]
            payload["action_history"] = [h.to_dict() for h in self.action_history]
        return payload


class PermitApproval(db.Model):
    """
    One decision event on a permit (APPROVED, REJECTED, REAPPROVED).

    IMMUTABLE: Never update or delete. Re-approval appends a new row.
    """
    __tablename__ = "permit_approvals"
    __table_args__ = (
        db.Index("ix_permit_approvals_permit", "permit_id"),
        db.Index("ix_permit_approvals_decision", "decision"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    permit_id = db.Column(db.Integer, db.ForeignKey("permits.id", ondelete="CASCADE"), nullable=False)

    approver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approver_name = db.Column(db.String(255), nullable=True)
    approver_role = db.Column(db.String(64), nullable=True)

    decision = db.Column(db.String(16), nullable=False)
    comment = db.Column(db.Text, nullable=True)
    signature = db.Column(db.Text, nullable=True)

    decided_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    permit = db.relationship("Permit", back_populates="approvals")
    approver = db.relationship("User")

    def to_dict(self, *, include_permit: bool = False) -> dict:
        payload = {
            "id": self.id,
            "permit_id": self.permit_id,
            "approver_id": self.approver_id,
            "approver_name": self.approver_name,
            "approver_role": self.approver_role,
            "decision": self.decision,
            "comment": self.comment,
            "signature": self.signature,
            "decided_at": to_utc_z(self.decided_at),
        }
        if include_permit and self.permit is not None:
            payload["permit"] = self.permit.to_dict(include_history=False)
        return payload


class PermitActionHistory(db.Model):
    """
    Append-only trail of workflow actions on a permit.

    performed_by_id is NULL for transitions applied by the scheduler.
    """
    __tablename__ = "permit_action_history"
    __table_args__ = (
        db.Index("ix_permit_action_history_permit", "permit_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    permit_id = db.Column(db.Integer, db.ForeignKey("permits.id", ondelete="CASCADE"), nullable=False)

    action = db.Column(db.String(32), nullable=False)
    performed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    performed_by_name = db.Column(db.String(255), nullable=True)
    performed_by_role = db.Column(db.String(64), nullable=True)

    comment = db.Column(db.Text, nullable=True)
    previous_status = db.Column(db.String(32), nullable=True)
    new_status = db.Column(db.String(32), nullable=True)
    signature = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    permit = db.relationship("Permit", back_populates="action_history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "permit_id": self.permit_id,
            "action": self.action,
            "performed_by_id": self.performed_by_id,
            "performed_by_name": self.performed_by_name,
            "performed_by_role": self.performed_by_role,
            "comment": self.comment,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "signature": self.signature,
            "created_at": to_utc_z(self.created_at),
        }


class PermitSequence(db.Model):
    """
    Atomic monthly permit-number sequences.

    WHY: Prevent duplicate permit numbers when two requestors submit at once.
    """
    __tablename__ = "permit_sequences"
    __table_args__ = (
        db.UniqueConstraint("prefix", "period", name="uq_permit_sequences_prefix_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(32), nullable=False)
    period = db.Column(db.String(16), nullable=False)  # "JAN 2026"
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
