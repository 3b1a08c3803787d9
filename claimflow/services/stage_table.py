"""Ordered definition of the claim approval pipeline.

Each stage is keyed by the claim status it acts on and names how its approver
is found: a fixed portal role, or the submitting employee's directory manager.
Approving a stage moves the claim to the stage's ``next_status``; the chain
ends at a single terminal status with no stage of its own.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

MANAGER_ROLE = "manager"


@dataclass(frozen=True)
class FixedRole:
    """Resolve to whoever currently holds ``role`` in the portal."""

    role: str


@dataclass(frozen=True)
class ManagerOf:
    """Resolve to the employee's manager as recorded in the directory."""

    role: str = MANAGER_ROLE


ResolutionMode = Union[FixedRole, ManagerOf]


@dataclass(frozen=True)
class Stage:
    status: str
    resolution: ResolutionMode
    next_status: str
    name: Optional[str] = None
    skip_for_torch_bearer: bool = False

    @property
    def uses_manager(self) -> bool:
        return isinstance(self.resolution, ManagerOf)

    @property
    def approver_role(self) -> str:
        return self.resolution.role

    @property
    def label(self) -> str:
        return self.name or self.status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "name": self.label,
            "approver_role": self.approver_role,
            "manager": self.uses_manager,
            "next_status": self.next_status,
            "skip_for_torch_bearer": self.skip_for_torch_bearer,
        }


DEFAULT_STAGES = (
    Stage("submitted", FixedRole("junior_admin"), "verified", name="verification", skip_for_torch_bearer=True),
    Stage("verified", ManagerOf(), "manager_approved", name="manager_approval"),
    Stage("manager_approved", FixedRole("admin_head"), "admin_approved", name="admin_approval"),
    Stage("admin_approved", FixedRole("cro"), "cro_approved", name="cro_approval"),
    Stage("cro_approved", FixedRole("cfo"), "cfo_approved", name="cfo_approval"),
    Stage("cfo_approved", FixedRole("finance"), "paid", name="finance_processing"),
)


class StageTable:
    """Immutable, validated stage chain."""

    def __init__(self, stages: Iterable[Stage]):
        self._stages: List[Stage] = list(stages)
        self._by_status: Dict[str, Stage] = {}
        for stage in self._stages:
            if stage.status in self._by_status:
                raise ValueError(f"Duplicate stage for status '{stage.status}'")
            self._by_status[stage.status] = stage
        self.terminal_status = self._validate()

    def _validate(self) -> str:
        if not self._stages:
            raise ValueError("Stage table must define at least one stage")

        terminals = {s.next_status for s in self._stages if s.next_status not in self._by_status}
        if len(terminals) != 1:
            raise ValueError(f"Stage table must end at exactly one terminal status, found {sorted(terminals)}")

        # Walking from the first stage has to visit every stage once and stop at the terminal status.
        seen = set()
        status = self._stages[0].status
        while status in self._by_status:
            if status in seen:
                raise ValueError(f"Stage table contains a cycle at '{status}'")
            seen.add(status)
            status = self._by_status[status].next_status
        if len(seen) != len(self._stages):
            orphans = sorted(set(self._by_status) - seen)
            raise ValueError(f"Stages not reachable from '{self._stages[0].status}': {orphans}")
        return status

    @classmethod
    def default(cls) -> "StageTable":
        return cls(DEFAULT_STAGES)

    @classmethod
    def from_config(cls, entries: Optional[Iterable[Dict[str, Any]]]) -> "StageTable":
        """Build a table from ``APPROVAL_STAGES`` style mappings.

        Each entry needs ``status`` and ``next_status`` and exactly one of
        ``role`` (fixed portal role) or ``manager: true``.
        """
        if entries is None:
            return cls.default()

        stages = []
        for entry in entries:
            has_role = bool(entry.get("role"))
            has_manager = bool(entry.get("manager"))
            if has_role == has_manager:
                raise ValueError(f"Stage '{entry.get('status')}' needs exactly one of 'role' or 'manager'")
            try:
                status, next_status = entry["status"], entry["next_status"]
            except KeyError as exc:
                raise ValueError(f"Stage entry {entry!r} is missing {exc.args[0]!r}") from exc
            stages.append(
                Stage(
                    status=status,
                    resolution=ManagerOf() if has_manager else FixedRole(entry["role"]),
                    next_status=next_status,
                    name=entry.get("name"),
                    skip_for_torch_bearer=bool(entry.get("skip_for_torch_bearer", False)),
                )
            )
        return cls(stages)

    def get(self, status: str) -> Optional[Stage]:
        return self._by_status.get(status)

    def is_terminal(self, status: str) -> bool:
        return status == self.terminal_status

    @property
    def statuses(self) -> List[str]:
        return [stage.status for stage in self._stages]

    def __contains__(self, status: object) -> bool:
        return status in self._by_status

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)
