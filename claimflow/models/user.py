"""Directory user model."""
from __future__ import annotations

import enum

from flask_login import UserMixin

from claimflow import db


class PortalRole(str, enum.Enum):
    EMPLOYEE = "employee"
    JUNIOR_ADMIN = "junior_admin"
    MANAGER = "manager"
    ADMIN_HEAD = "admin_head"
    CRO = "cro"
    CFO = "cfo"
    FINANCE = "finance"
    ADMIN = "admin"


class User(UserMixin, db.Model):
    """Snapshot of a directory user, kept current by the directory sync job."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    # Free-text so a reconfigured pipeline can introduce new role labels
    portal_role = db.Column(db.String(50), nullable=False, default=PortalRole.EMPLOYEE.value, index=True)
    manager_email = db.Column(db.String(255), nullable=True)
    torch_bearer = db.Column(db.Boolean, nullable=True, default=False)
    department = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_directory_sync = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    def get_id(self) -> str:
        return str(self.id)

    def has_role(self, *roles: str) -> bool:
        return self.portal_role in {getattr(role, "value", role) for role in roles}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "portal_role": self.portal_role,
            "manager_email": self.manager_email,
            "torch_bearer": bool(self.torch_bearer),
            "department": self.department,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.portal_role}>"
