"""General helper utilities."""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import jsonify
from flask_login import current_user

from claimflow.models import PortalRole
from claimflow.services.errors import RoutingError

JsonView = Callable[..., Any]


def json_response(payload: Any, status: int = 200):
    """Return a JSON response with status code."""
    return jsonify(payload), status


def error_response(error: RoutingError):
    """Serialize a routing failure with its HTTP status."""
    return json_response(error.to_dict(), status=error.http_status)


def role_required(*roles: PortalRole):
    """Restrict a route to one or more portal roles."""
    def decorator(view_func: JsonView) -> JsonView:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_response({"success": False, "error": "Authentication required."}, status=401)
            if not current_user.has_role(*roles):
                return json_response({"success": False, "error": "Insufficient permissions."}, status=403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator
