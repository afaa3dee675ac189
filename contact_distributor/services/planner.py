from __future__ import annotations

from collections.abc import Sequence

from ..errors import TargetCountError
from ..models.contact_record import ContactRecord
from ..models.distribution import AgentAllocation, DistributionPlan, DistributionTarget
from ..models.rejection import RowRejection

"""Distribution planner: fair base+remainder split across exactly 5 agents.

With n accepted records, base = n // 5 and remainder = n % 5. Target i (roster
order) receives base + 1 records when i < remainder, otherwise base. Records
are sliced contiguously in file order; nothing is shuffled or rebalanced.

Guarantees: sum(counts) == n, max(counts) - min(counts) <= 1, and the
concatenated slices reproduce the accepted order exactly.
"""

__all__ = [
    "ROSTER_SIZE",
    "allocation_sizes",
    "plan_distribution",
]

# 5 名固定の業務ルール (可変にする場合は別の planning mode として追加する)
ROSTER_SIZE = 5


def allocation_sizes(total: int, targets: int = ROSTER_SIZE) -> list[int]:
    """Slice sizes for the fair remainder split of ``total`` items.

    >>> allocation_sizes(23)
    [5, 5, 5, 4, 4]
    >>> allocation_sizes(4)
    [1, 1, 1, 1, 0]
    """
    if targets <= 0:
        raise ValueError("targets must be positive")
    if total < 0:
        raise ValueError("total must not be negative")
    base, remainder = divmod(total, targets)
    return [base + 1 if i < remainder else base for i in range(targets)]


def plan_distribution(
    records: Sequence[ContactRecord],
    targets: Sequence[DistributionTarget],
    *,
    source_file_name: str = "",
    rejections: Sequence[RowRejection] = (),
) -> DistributionPlan:
    """Build the DistributionPlan for one upload.

    Raises:
        TargetCountError: roster does not hold exactly ROSTER_SIZE targets.
            Raised before any allocation is computed.
    """
    if len(targets) != ROSTER_SIZE:
        raise TargetCountError(actual=len(targets), expected=ROSTER_SIZE)

    allocations: list[AgentAllocation] = []
    start = 0
    for target, size in zip(targets, allocation_sizes(len(records)), strict=True):
        allocations.append(AgentAllocation(target=target, records=tuple(records[start:start + size])))
        start += size

    return DistributionPlan(
        source_file_name=source_file_name,
        total_accepted=len(records),
        allocations=tuple(allocations),
        rejections=tuple(rejections),
    )
