from __future__ import annotations

from dataclasses import dataclass, field

from .contact_record import ContactRecord
from .rejection import RowRejection

"""Distribution domain models: targets, per-agent allocations and the plan.

All three are immutable values. The planner builds them once per run and
the recorder persists them; nothing mutates a plan after construction.
"""

__all__ = [
    "DistributionTarget",
    "AgentAllocation",
    "DistributionPlan",
]


@dataclass(frozen=True)
class DistributionTarget:
    """An eligible agent supplied by a roster selector (opaque to the core)."""
    target_id: str
    display_name: str


@dataclass(frozen=True)
class AgentAllocation:
    """Contiguous slice of accepted records assigned to one target."""
    target: DistributionTarget
    records: tuple[ContactRecord, ...] = ()

    @property
    def count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class DistributionPlan:
    """Result of one planning run (one uploaded file)."""
    source_file_name: str
    total_accepted: int
    allocations: tuple[AgentAllocation, ...]
    rejections: tuple[RowRejection, ...] = field(default_factory=tuple)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    @property
    def counts(self) -> list[int]:
        """Allocation sizes in roster order."""
        return [a.count for a in self.allocations]
