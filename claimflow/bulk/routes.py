"""Bulk upload admission routes."""
from __future__ import annotations

from typing import Any

from flask_login import current_user, login_required

from claimflow.services.bulk_admission import BULK_ADMITTERS, admit_bulk_claim
from claimflow.services.errors import RoutingError
from claimflow.services.workflow import get_workflow_driver
from claimflow.utils.helpers import error_response, json_response, role_required

from . import bulk_bp


@bulk_bp.route("/claims/<claim_id>/submit", methods=["POST"])
@login_required
@role_required(*BULK_ADMITTERS)
def submit_claim(claim_id: str) -> Any:
    """Admit a draft bulk claim into the approval pipeline."""
    try:
        result = admit_bulk_claim(get_workflow_driver(), claim_id, current_user)
    except RoutingError as exc:
        return error_response(exc)
    return json_response(result)
