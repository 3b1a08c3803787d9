"""Approval routing routes."""
from __future__ import annotations

from typing import Any, Dict

from flask import current_app, request
from flask_login import current_user, login_required
from sqlalchemy import and_, or_

from claimflow.models import Claim, PortalRole, User, db
from claimflow.services.errors import RoutingError
from claimflow.services.workflow import get_workflow_driver
from claimflow.utils.helpers import error_response, json_response

from . import approvals_bp


@approvals_bp.route("/advance", methods=["POST"])
@login_required
def advance() -> Any:
    """Resolve and assign the approver for a claim at the given status."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    if missing := {"claim_id", "current_status"} - payload.keys():
        return json_response({"success": False, "error": f"Missing fields: {', '.join(sorted(missing))}"}, status=400)

    try:
        resolution = get_workflow_driver().advance(str(payload["claim_id"]), str(payload["current_status"]))
    except RoutingError as exc:
        return error_response(exc)
    return json_response(resolution.to_dict())


@approvals_bp.route("/<claim_id>/decision", methods=["POST"])
@login_required
def decide(claim_id: str) -> Any:
    """Approve, reject or send back the claim as its current approver."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    action = payload.get("action")
    if not action:
        return json_response({"success": False, "error": "Missing fields: action"}, status=400)

    try:
        result = get_workflow_driver().record_decision(claim_id, current_user, action, payload.get("remarks"))
    except RoutingError as exc:
        return error_response(exc)
    return json_response(result)


@approvals_bp.route("/pending", methods=["GET"])
@login_required
def pending() -> Any:
    """Return claims currently awaiting the signed-in user."""
    stages = current_app.extensions["claimflow_stages"]

    if current_user.portal_role == PortalRole.ADMIN.value:
        condition = Claim.status.in_(stages.statuses)
    else:
        role_statuses = [s.status for s in stages if not s.uses_manager and s.approver_role == current_user.portal_role]
        manager_statuses = [s.status for s in stages if s.uses_manager]
        reports = db.select(User.email).where(db.func.lower(User.manager_email) == current_user.email.lower())
        condition = or_(
            Claim.status.in_(role_statuses),
            and_(Claim.status.in_(manager_statuses), Claim.employee_email.in_(reports)),
        )

    claims = Claim.query.filter(condition).order_by(Claim.created_at.asc()).all()
    return json_response({"claims": [dict(claim.to_dict(), sla_status=claim.sla_status()) for claim in claims]})


@approvals_bp.route("/stages", methods=["GET"])
@login_required
def stages() -> Any:
    """Describe the configured approval pipeline."""
    table = current_app.extensions["claimflow_stages"]
    return json_response(
        {"stages": [stage.to_dict() for stage in table], "terminal_status": table.terminal_status}
    )
