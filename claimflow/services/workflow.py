"""Workflow driver: one routing step per call.

``advance`` resolves who must act on a claim at a given status, records that
on the claim and notifies the approver. ``record_decision`` is the second half
of the cycle: it applies the current approver's decision and, on approval,
routes the claim to the following stage.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import current_app

from claimflow.models import AuditLog, Claim, ClaimStatus, PortalRole, User
from claimflow.services.approver_resolver import ApproverResolver, Resolution
from claimflow.services.claim_store import ClaimStore
from claimflow.services.directory import DirectoryEntry, DirectoryGateway
from claimflow.services.errors import (
    DependencyUnavailable,
    InvalidDecision,
    InvalidStatus,
    NotClaimOwner,
    NotCurrentApprover,
    RoutingError,
)
from claimflow.services.notifications import (
    CLAIM_APPROVED,
    CLAIM_REJECTED,
    CLAIM_SENT_BACK,
    NotificationEmitter,
)
from claimflow.services.stage_table import Stage, StageTable

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"
SEND_BACK = "send_back"

RESUBMIT_EDITABLE_FIELDS = ("amount", "description")

_DECISIONS = {
    APPROVE: ("approved", CLAIM_APPROVED, "Claim Approved"),
    REJECT: ("rejected", CLAIM_REJECTED, "Claim Rejected"),
    SEND_BACK: ("sent_back", CLAIM_SENT_BACK, "Claim Sent Back"),
}


class WorkflowDriver:
    def __init__(
        self,
        stages: StageTable,
        store: Optional[ClaimStore] = None,
        directory: Optional[DirectoryGateway] = None,
        notifier: Optional[NotificationEmitter] = None,
    ):
        self.stages = stages
        self.store = store or ClaimStore()
        self.directory = directory or DirectoryGateway()
        self.resolver = ApproverResolver(stages, self.directory)
        self.notifier = notifier or NotificationEmitter()

    def advance(self, claim_id: str, current_status: str) -> Resolution:
        """Resolve and assign the approver for ``current_status``.

        The claim keeps the actioned status (not ``next_status``); it only moves
        on when the approver's decision is recorded.
        """
        claim = self.store.require_claim(claim_id)
        read_status, read_version = claim.status, claim.version

        employee = self._lookup_user(claim.employee_email)
        resolution = self.resolver.resolve(claim, current_status, employee)

        if resolution.approver_email:
            claim = self.store.update_claim(
                claim.id,
                read_status,
                read_version,
                {
                    "status": resolution.stage_status,
                    "current_approver_role": resolution.approver_role,
                },
            )
            logger.info(
                f"Claim {claim.claim_number} awaiting {resolution.approver_role} "
                f"({resolution.approver_email}) at '{resolution.stage_status}'"
            )
            approver = self._lookup_user(resolution.approver_email)
            self.notifier.pending_approval(resolution.approver_email, claim, approver.full_name if approver else None)
        elif resolution.unassigned:
            logger.warning(
                f"UnassignedApprover: no active user holds role '{resolution.approver_role}' "
                f"for claim {claim.claim_number} at '{resolution.stage_status}'"
            )
        else:
            logger.info(f"Claim {claim.claim_number}: every remaining stage was skipped")

        return resolution

    resolve_current_approver = advance

    def record_decision(self, claim_id: str, actor: User, action: str, remarks: Optional[str] = None) -> Dict[str, Any]:
        if action not in _DECISIONS:
            raise InvalidDecision(f"Unsupported action '{action}'. Use one of: {', '.join(_DECISIONS)}.")
        if action != APPROVE and not (remarks or "").strip():
            raise InvalidDecision("Remarks are required to reject or send back a claim.")

        claim = self.store.require_claim(claim_id)
        stage = self.stages.get(claim.status)
        if stage is None:
            raise InvalidStatus(f"Claim {claim.claim_number} is not awaiting approval (status '{claim.status}').")

        employee = self._lookup_user(claim.employee_email)
        self._check_actor(claim, stage, actor, employee)

        audit_action, notification_type, title = _DECISIONS[action]
        if action == APPROVE:
            following = self.stages.get(stage.next_status)
            patch = {
                "status": stage.next_status,
                "current_approver_role": following.approver_role if following else None,
            }
            message = f"Your claim {claim.claim_number} has been approved by {actor.full_name}."
        elif action == REJECT:
            patch = {"status": ClaimStatus.REJECTED.value, "current_approver_role": None, "rejection_reason": remarks}
            message = f"Your claim {claim.claim_number} has been rejected. Reason: {remarks}"
        else:
            patch = {"status": ClaimStatus.SENT_BACK.value, "current_approver_role": None, "send_back_reason": remarks}
            message = f"Your claim {claim.claim_number} has been sent back. Reason: {remarks}"

        audit = AuditLog(
            claim_id=claim.id,
            claim_number=claim.claim_number,
            actor_email=actor.email,
            actor_name=actor.full_name,
            actor_role=actor.portal_role,
            stage=stage.label,
            action=audit_action,
            remarks=remarks,
            previous_status=claim.status,
            new_status=patch["status"],
        )
        updated = self.store.update_claim(claim.id, claim.status, claim.version, patch, related=[audit])
        logger.info(f"Claim {updated.claim_number} {audit_action} by {actor.email} at '{stage.status}'")
        self.notifier.notify_employee(updated, notification_type, title, message)

        result: Dict[str, Any] = {"success": True, "action": action, "claim": updated.to_dict()}
        if action == APPROVE and not self.stages.is_terminal(updated.status):
            result["routing"] = self._route_committed(updated)
        return result

    def record_approval_and_advance(self, claim_id: str, actor: User, remarks: Optional[str] = None) -> Dict[str, Any]:
        return self.record_decision(claim_id, actor, APPROVE, remarks)

    def resubmit(
        self,
        claim_id: str,
        employee: User,
        changes: Optional[Dict[str, Any]] = None,
        remarks: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Put a sent-back claim back into the pipeline at ``submitted``.

        Only the claim's owner may resubmit. ``changes`` may correct the amount
        or description; the SLA date and claim number are kept.
        """
        claim = self.store.require_claim(claim_id)
        if claim.employee_email.lower() != employee.email.lower():
            raise NotClaimOwner(f"{employee.email} does not own claim {claim.claim_number}.")
        if claim.status != ClaimStatus.SENT_BACK.value:
            raise InvalidStatus(f"Claim {claim.claim_number} was not sent back (status '{claim.status}').")

        patch: Dict[str, Any] = {
            key: value for key, value in (changes or {}).items() if key in RESUBMIT_EDITABLE_FIELDS
        }
        patch.update(status=ClaimStatus.SUBMITTED.value, current_approver_role=None)
        audit = AuditLog(
            claim_id=claim.id,
            claim_number=claim.claim_number,
            actor_email=employee.email,
            actor_name=employee.full_name,
            actor_role=employee.portal_role,
            stage="resubmission",
            action="resubmitted",
            remarks=remarks,
            previous_status=claim.status,
            new_status=ClaimStatus.SUBMITTED.value,
            extra_data={"changed_fields": sorted(set(patch) - {"status", "current_approver_role"})},
        )
        updated = self.store.update_claim(claim.id, claim.status, claim.version, patch, related=[audit])
        logger.info(f"Claim {updated.claim_number} resubmitted by {employee.email}")

        return {
            "success": True,
            "claim": updated.to_dict(),
            "routing": self._route_committed(updated),
        }

    def _route_committed(self, claim: Claim) -> Dict[str, Any]:
        # The preceding write is already committed; a failed follow-up leaves
        # the claim at its new status for the caller to advance again.
        try:
            return self.advance(claim.id, claim.status).to_dict()
        except RoutingError as exc:
            logger.error(f"Claim {claim.claim_number} updated but routing failed: {exc.message}")
            return exc.to_dict()

    def _lookup_user(self, email: Optional[str]) -> Optional[DirectoryEntry]:
        # A failed lookup reads as a missing record.
        try:
            return self.directory.get_user_by_email(email)
        except DependencyUnavailable as exc:
            logger.warning(f"Directory lookup for {email} failed, routing without it: {exc.message}")
            return None

    @staticmethod
    def _check_actor(claim: Claim, stage: Stage, actor: User, employee: Optional[DirectoryEntry]) -> None:
        if actor.portal_role == PortalRole.ADMIN.value:
            return
        if stage.uses_manager:
            manager_email = employee.manager_email if employee else None
            if manager_email and actor.email.lower() == manager_email.lower():
                return
        elif actor.portal_role == stage.approver_role:
            return
        raise NotCurrentApprover(
            f"{actor.email} is not the current approver for claim {claim.claim_number} at '{stage.status}'."
        )


def get_workflow_driver() -> WorkflowDriver:
    """Build a driver from the running app's configuration."""
    return WorkflowDriver(
        current_app.extensions["claimflow_stages"],
        notifier=NotificationEmitter(send_email=current_app.config.get("NOTIFY_BY_EMAIL", True)),
    )
