"""Approver resolution for the claim approval pipeline.

Resolution is a pure read: it consults the stage table and the directory and
never writes. Skipped stages (no manager on file, torch-bearer exemption) are
walked in a loop bounded by the number of stages.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from claimflow.services.directory import DirectoryEntry, DirectoryGateway
from claimflow.services.errors import InvalidStatus
from claimflow.services.stage_table import Stage, StageTable

logger = logging.getLogger(__name__)

SKIP_TORCH_BEARER = "torch_bearer"
SKIP_NO_MANAGER = "no_manager"


@dataclass(frozen=True)
class Resolution:
    approver_email: Optional[str]
    approver_role: Optional[str]
    next_status: str
    # Status whose approver was resolved; differs from the requested one after skips
    stage_status: str
    skipped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def unassigned(self) -> bool:
        """True when a role was due but nobody currently holds it."""
        return self.approver_email is None and self.approver_role is not None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": True,
            "approver_email": self.approver_email,
            "approver_role": self.approver_role,
            "next_status": self.next_status,
            "stage_status": self.stage_status,
            "skipped_stages": list(self.skipped),
            "unassigned": self.unassigned,
        }
        if self.unassigned:
            payload["warning"] = "UnassignedApprover"
        return payload


def skip_reason(stage: Stage, employee: Optional[DirectoryEntry]) -> Optional[str]:
    """Return why ``stage`` is bypassed for ``employee``, or None."""
    if stage.skip_for_torch_bearer and employee is not None and employee.torch_bearer:
        return SKIP_TORCH_BEARER
    if stage.uses_manager and (employee is None or not employee.manager_email):
        return SKIP_NO_MANAGER
    return None


class ApproverResolver:
    def __init__(self, stages: StageTable, directory: DirectoryGateway):
        self.stages = stages
        self.directory = directory

    def resolve(self, claim: Any, current_status: str, employee: Optional[DirectoryEntry] = None) -> Resolution:
        stage = self.stages.get(current_status)
        if stage is None:
            raise InvalidStatus(f"Invalid status for approval routing: '{current_status}'")

        skipped = []
        for _ in range(len(self.stages)):
            reason = skip_reason(stage, employee)
            if reason is None:
                break
            logger.debug(f"Claim {claim.claim_number}: skipping stage '{stage.status}' ({reason})")
            skipped.append(stage.status)
            following = self.stages.get(stage.next_status)
            if following is None:
                # Every remaining stage was skipped; nothing left to approve.
                return Resolution(None, None, stage.next_status, stage.next_status, tuple(skipped))
            stage = following

        if stage.uses_manager:
            approver_email = employee.manager_email
        else:
            holder = self.directory.find_user_by_role(stage.approver_role)
            approver_email = holder.email if holder else None

        return Resolution(
            approver_email=approver_email,
            approver_role=stage.approver_role,
            next_status=stage.next_status,
            stage_status=stage.status,
            skipped=tuple(skipped),
        )
