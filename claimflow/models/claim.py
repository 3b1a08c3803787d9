"""Reimbursement claim model."""
from __future__ import annotations

import enum
import uuid
from datetime import date
from typing import Optional

from claimflow import db


class ClaimType(enum.Enum):
    NORMAL = "normal"
    SALES_PROMOTION = "sales_promotion"


SLA_URGENT_DAYS = 3
SLA_WARNING_DAYS = 10


class ClaimStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    MANAGER_APPROVED = "manager_approved"
    ADMIN_APPROVED = "admin_approved"
    CRO_APPROVED = "cro_approved"
    CFO_APPROVED = "cfo_approved"
    PAID = "paid"
    REJECTED = "rejected"
    SENT_BACK = "sent_back"


def _new_claim_id() -> str:
    return str(uuid.uuid4())


class Claim(db.Model):
    __tablename__ = "claims"

    id = db.Column(db.String(36), primary_key=True, default=_new_claim_id)
    claim_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    claim_type = db.Column(db.Enum(ClaimType, name="claim_type"), nullable=False, default=ClaimType.NORMAL)
    employee_email = db.Column(db.String(255), nullable=False, index=True)
    employee_name = db.Column(db.String(200), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_bulk_upload = db.Column(db.Boolean, default=False, nullable=False)

    # Routing state, written only by the workflow services
    status = db.Column(db.String(50), nullable=False, default=ClaimStatus.SUBMITTED.value, index=True)
    current_approver_role = db.Column(db.String(50), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)

    rejection_reason = db.Column(db.Text, nullable=True)
    send_back_reason = db.Column(db.Text, nullable=True)
    sla_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now(), nullable=False)

    audit_entries = db.relationship(
        "AuditLog",
        back_populates="claim",
        lazy="selectin",
        order_by="AuditLog.id",
    )

    def sla_status(self, today: Optional[date] = None) -> str:
        """Classify the time left before ``sla_date`` as urgent, warning or normal."""
        if self.sla_date is None:
            return "normal"
        days_remaining = (self.sla_date - (today or date.today())).days
        if days_remaining <= SLA_URGENT_DAYS:
            return "urgent"
        if days_remaining <= SLA_WARNING_DAYS:
            return "warning"
        return "normal"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "claim_number": self.claim_number,
            "claim_type": self.claim_type.value if self.claim_type else None,
            "employee_email": self.employee_email,
            "employee_name": self.employee_name,
            "amount": float(self.amount) if self.amount is not None else None,
            "description": self.description,
            "is_bulk_upload": self.is_bulk_upload,
            "status": self.status,
            "current_approver_role": self.current_approver_role,
            "version": self.version,
            "rejection_reason": self.rejection_reason,
            "send_back_reason": self.send_back_reason,
            "sla_date": self.sla_date.isoformat() if self.sla_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Claim {self.claim_number} status={self.status}>"
