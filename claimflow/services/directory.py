"""Read-only gateway over the synced user directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func

from claimflow.models import User
from claimflow.services.errors import dependency_guard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    email: str
    full_name: Optional[str] = None
    portal_role: Optional[str] = None
    manager_email: Optional[str] = None
    torch_bearer: bool = False

    @classmethod
    def from_user(cls, user: User) -> "DirectoryEntry":
        return cls(
            email=user.email,
            full_name=user.full_name,
            portal_role=user.portal_role,
            manager_email=user.manager_email or None,
            torch_bearer=bool(user.torch_bearer),
        )


class DirectoryGateway:
    """Looks up employees and role holders in the ``users`` table."""

    def get_user_by_email(self, email: Optional[str]) -> Optional[DirectoryEntry]:
        if not email:
            return None
        with dependency_guard("User directory"):
            user = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
        if user is None:
            logger.debug(f"No directory record for {email}")
            return None
        return DirectoryEntry.from_user(user)

    def find_user_by_role(self, portal_role: str) -> Optional[DirectoryEntry]:
        """Return the first active user holding ``portal_role``, or None."""
        with dependency_guard("User directory"):
            user = (
                User.query.filter_by(portal_role=portal_role, is_active=True)
                .order_by(User.email)
                .first()
            )
        return DirectoryEntry.from_user(user) if user else None
