"""Audit logging model for claim decisions."""
from __future__ import annotations

from claimflow import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.String(36), db.ForeignKey("claims.id"), nullable=False, index=True)
    claim_number = db.Column(db.String(50), nullable=False)
    actor_email = db.Column(db.String(255), nullable=False)
    actor_name = db.Column(db.String(200), nullable=True)
    actor_role = db.Column(db.String(50), nullable=True)
    stage = db.Column(db.String(50), nullable=True)
    action = db.Column(db.String(50), nullable=False)
    remarks = db.Column(db.Text, nullable=True)
    previous_status = db.Column(db.String(50), nullable=True)
    new_status = db.Column(db.String(50), nullable=True)
    timestamp = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    extra_data = db.Column(db.JSON, nullable=True)

    claim = db.relationship("Claim", back_populates="audit_entries", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "claim_id": self.claim_id,
            "claim_number": self.claim_number,
            "actor_email": self.actor_email,
            "actor_name": self.actor_name,
            "actor_role": self.actor_role,
            "stage": self.stage,
            "action": self.action,
            "remarks": self.remarks,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "extra_data": self.extra_data,
        }

    def __repr__(self) -> str:
        return f"<AuditLog {self.claim_number} action={self.action}>"
