"""In-app notification model."""
from __future__ import annotations

from claimflow import db


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    claim_id = db.Column(db.String(36), db.ForeignKey("claims.id"), nullable=True, index=True)
    claim_number = db.Column(db.String(50), nullable=True)
    notification_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "claim_id": self.claim_id,
            "claim_number": self.claim_number,
            "notification_type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Notification {self.notification_type} to={self.recipient_email}>"
