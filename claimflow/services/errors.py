"""Failures reported by the routing services."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as SQLATimeoutError

from claimflow import db

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Base class for failures the caller has to act on."""

    code = "RoutingError"
    http_status = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "error_code": self.code,
            "retryable": self.retryable,
        }


class InvalidStatus(RoutingError):
    code = "InvalidStatus"


class ClaimNotFound(RoutingError):
    code = "ClaimNotFound"
    http_status = 404


class ConcurrentModification(RoutingError):
    """The claim changed between read and write; reload and retry."""

    code = "ConcurrentModification"
    http_status = 409
    retryable = True


class DependencyUnavailable(RoutingError):
    """The claim store or directory timed out or refused the call."""

    code = "DependencyUnavailable"
    http_status = 503
    retryable = True


class NotCurrentApprover(RoutingError):
    code = "NotCurrentApprover"
    http_status = 403


class NotClaimOwner(RoutingError):
    code = "NotClaimOwner"
    http_status = 403


class InvalidDecision(RoutingError):
    code = "InvalidDecision"


@contextmanager
def dependency_guard(dependency: str) -> Iterator[None]:
    """Turn store timeouts and connection failures into ``DependencyUnavailable``.

    The session is rolled back first so no half-written claim survives.
    """
    try:
        yield
    except (OperationalError, SQLATimeoutError) as exc:
        db.session.rollback()
        logger.error(f"{dependency} unavailable: {exc}")
        raise DependencyUnavailable(f"{dependency} is unavailable, retry later.") from exc
