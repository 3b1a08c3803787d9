"""Application data models exposed for easy imports."""
from claimflow import db  # noqa: F401
from .user import PortalRole, User  # noqa: F401
from .claim import Claim, ClaimStatus, ClaimType  # noqa: F401
from .notification import Notification  # noqa: F401
from .audit import AuditLog  # noqa: F401

__all__ = [
    "db",
    "PortalRole",
    "User",
    "Claim",
    "ClaimStatus",
    "ClaimType",
    "Notification",
    "AuditLog",
]
