"""Employee-facing routes."""
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from flask import current_app, request
from flask_login import current_user, login_required

from claimflow.models import Claim, ClaimStatus, ClaimType, PortalRole
from claimflow.services.errors import RoutingError
from claimflow.services.workflow import get_workflow_driver
from claimflow.utils.helpers import error_response, json_response

from . import employee_bp


def _parse_amount(raw: Any) -> Tuple[Optional[Decimal], Optional[str]]:
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, TypeError):
        return None, "Invalid amount."
    if amount <= 0:
        return None, "Amount must be positive."
    return amount, None


@employee_bp.route("/claims", methods=["GET"])
@login_required
def list_claims() -> Any:
    """List claims submitted by the current employee."""
    claims = (
        Claim.query.filter_by(employee_email=current_user.email)
        .order_by(Claim.created_at.desc())
        .all()
    )
    return json_response({"claims": [claim.to_dict() for claim in claims]})


@employee_bp.route("/claims", methods=["POST"])
@login_required
def submit_claim() -> Any:
    """Submit a new claim and route it to its first approver."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    if missing := {"amount"} - payload.keys():
        return json_response({"success": False, "error": f"Missing fields: {', '.join(sorted(missing))}"}, status=400)

    amount, error = _parse_amount(payload["amount"])
    if error:
        return json_response({"success": False, "error": error}, status=400)

    try:
        claim_type = ClaimType(payload.get("claim_type", ClaimType.NORMAL.value))
    except ValueError:
        return json_response({"success": False, "error": "Unsupported claim type."}, status=400)

    driver = get_workflow_driver()
    try:
        claim = driver.store.create_claim(
            prefix=current_app.config.get("CLAIM_NUMBER_PREFIX", "CLM"),
            claim_type=claim_type,
            employee_email=current_user.email,
            employee_name=current_user.full_name,
            amount=amount,
            description=payload.get("description"),
            status=ClaimStatus.SUBMITTED.value,
            sla_date=date.today() + timedelta(days=current_app.config.get("SLA_DAYS", 45)),
        )
    except RoutingError as exc:
        return error_response(exc)

    try:
        routing = driver.advance(claim.id, ClaimStatus.SUBMITTED.value).to_dict()
    except RoutingError as exc:
        # The claim exists either way; report the routing problem alongside it.
        routing = exc.to_dict()

    claim = driver.store.get_claim(claim.id)
    return json_response({"success": True, "claim": claim.to_dict(), "routing": routing}, status=201)


@employee_bp.route("/claims/<claim_id>/resubmit", methods=["POST"])
@login_required
def resubmit_claim(claim_id: str) -> Any:
    """Correct a sent-back claim and put it back into the pipeline."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    changes: Dict[str, Any] = {}
    if "amount" in payload:
        amount, error = _parse_amount(payload["amount"])
        if error:
            return json_response({"success": False, "error": error}, status=400)
        changes["amount"] = amount
    if "description" in payload:
        changes["description"] = payload["description"]

    try:
        result = get_workflow_driver().resubmit(claim_id, current_user, changes, payload.get("remarks"))
    except RoutingError as exc:
        return error_response(exc)
    return json_response(result)


@employee_bp.route("/claims/<claim_id>", methods=["GET"])
@login_required
def claim_detail(claim_id: str) -> Any:
    """Return a claim with its audit trail."""
    claim = get_workflow_driver().store.get_claim(claim_id)
    if claim is None:
        return json_response({"success": False, "error": "Claim not found."}, status=404)

    is_owner = claim.employee_email.lower() == current_user.email.lower()
    if not is_owner and current_user.portal_role == PortalRole.EMPLOYEE.value:
        return json_response({"success": False, "error": "Insufficient permissions."}, status=403)

    return json_response(
        {
            "claim": claim.to_dict(),
            "audit_trail": [entry.to_dict() for entry in claim.audit_entries],
        }
    )
