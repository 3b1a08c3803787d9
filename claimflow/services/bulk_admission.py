"""Admission of bulk-uploaded claims that already carry an approval decision."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from claimflow.models import AuditLog, ClaimStatus, ClaimType, PortalRole, User
from claimflow.services.errors import InvalidStatus
from claimflow.services.notifications import CLAIM_SUBMITTED
from claimflow.services.workflow import WorkflowDriver

logger = logging.getLogger(__name__)

BULK_ADMITTERS = (PortalRole.ADMIN_HEAD, PortalRole.CRO, PortalRole.ADMIN)


def fast_path_for(claim_type: ClaimType, admitter_role: str) -> Optional[Dict[str, str]]:
    """Return the auto-approval target for a bulk claim, or None for normal routing."""
    if claim_type == ClaimType.NORMAL:
        return {
            "status": ClaimStatus.CFO_APPROVED.value,
            "stage": "admin_approval",
            "remarks": "Auto-approved: Bulk upload - Normal reimbursement",
        }
    if claim_type == ClaimType.SALES_PROMOTION and admitter_role == PortalRole.CRO.value:
        return {
            "status": ClaimStatus.CRO_APPROVED.value,
            "stage": "cro_approval",
            "remarks": "Auto-approved: Bulk upload by CRO",
        }
    return None


def admit_bulk_claim(driver: WorkflowDriver, claim_id: str, admitted_by: User) -> Dict[str, Any]:
    """Move a draft bulk claim into the pipeline.

    Fast-path claims skip the early stages and get one audit entry recording
    the auto-approval; anything else enters at ``submitted`` and is routed.
    """
    claim = driver.store.require_claim(claim_id)
    if claim.status != ClaimStatus.DRAFT.value:
        raise InvalidStatus(f"Claim {claim.claim_number} is not a draft (status '{claim.status}').")

    target = fast_path_for(claim.claim_type, admitted_by.portal_role)
    if target and target["status"] not in driver.stages:
        logger.warning(
            f"Bulk claim {claim.claim_number}: fast-path status '{target['status']}' is not in the "
            f"stage table, routing from 'submitted' instead"
        )
        target = None

    related = []
    if target:
        patch = {
            "status": target["status"],
            "current_approver_role": driver.stages.get(target["status"]).approver_role,
        }
        related.append(
            AuditLog(
                claim_id=claim.id,
                claim_number=claim.claim_number,
                actor_email=admitted_by.email,
                actor_name=admitted_by.full_name,
                actor_role=admitted_by.portal_role,
                stage=target["stage"],
                action="approved",
                remarks=target["remarks"],
                previous_status=claim.status,
                new_status=target["status"],
                extra_data={"auto_approved": True, "source": "bulk_upload"},
            )
        )
    else:
        patch = {"status": ClaimStatus.SUBMITTED.value, "current_approver_role": None}

    updated = driver.store.update_claim(claim.id, claim.status, claim.version, patch, related=related)
    logger.info(
        f"Bulk claim {updated.claim_number} admitted by {admitted_by.email} "
        f"as '{updated.status}'{' (auto-approved)' if target else ''}"
    )
    driver.notifier.notify_employee(
        updated,
        CLAIM_SUBMITTED,
        "Claim Submitted",
        f"Your claim {updated.claim_number} has been submitted by {admitted_by.full_name}.",
    )

    result: Dict[str, Any] = {"success": True, "auto_approved": bool(target), "claim": updated.to_dict()}
    if not target:
        result["routing"] = driver.advance(updated.id, ClaimStatus.SUBMITTED.value).to_dict()
    return result
