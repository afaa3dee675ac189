from __future__ import annotations

import pytest

from contact_distributor.errors import TargetCountError
from contact_distributor.models.contact_record import ContactRecord
from contact_distributor.models.distribution import DistributionTarget
from contact_distributor.models.rejection import RejectionReason, RowRejection
from contact_distributor.services.planner import ROSTER_SIZE, allocation_sizes, plan_distribution


def _records(n: int) -> list[ContactRecord]:
    return [ContactRecord(first_name=f"N{i}", phone=f"{5550000000 + i}") for i in range(n)]


@pytest.mark.parametrize(
    ("n", "expected"),
    [
        (23, [5, 5, 5, 4, 4]),
        (5, [1, 1, 1, 1, 1]),
        (4, [1, 1, 1, 1, 0]),
        (0, [0, 0, 0, 0, 0]),
        (10, [2, 2, 2, 2, 2]),
        (11, [3, 2, 2, 2, 2]),
    ],
)
def test_counts_follow_fair_remainder_split(n: int, expected: list[int], roster):
    plan = plan_distribution(_records(n), roster, source_file_name="contacts.csv")
    assert plan.counts == expected
    assert plan.total_accepted == n


def test_allocations_follow_roster_order(roster):
    plan = plan_distribution(_records(7), roster)
    assert [a.target for a in plan.allocations] == roster


def test_slices_are_contiguous_and_ordered(roster):
    records = _records(23)
    plan = plan_distribution(records, roster)
    assert plan.allocations[0].records == tuple(records[0:5])
    assert plan.allocations[3].records == tuple(records[15:19])
    assert plan.allocations[4].records == tuple(records[19:23])


def test_properties_hold_for_many_sizes(roster):
    for n in range(0, 64):
        records = _records(n)
        plan = plan_distribution(records, roster)
        counts = plan.counts
        base, remainder = divmod(n, ROSTER_SIZE)
        assert sum(counts) == n
        assert max(counts) - min(counts) in (0, 1)
        assert counts[:remainder] == [base + 1] * remainder
        assert counts[remainder:] == [base] * (ROSTER_SIZE - remainder)
        concatenated = [r for a in plan.allocations for r in a.records]
        assert concatenated == records


def test_planning_is_deterministic(roster):
    records = _records(17)
    first = plan_distribution(records, roster, source_file_name="x.csv")
    second = plan_distribution(records, roster, source_file_name="x.csv")
    assert first == second


def test_rejections_travel_with_plan(roster):
    rejection = RowRejection(row_number=3, reason=RejectionReason.PHONE_TOO_SHORT)
    plan = plan_distribution(_records(2), roster, source_file_name="f.csv", rejections=[rejection])
    assert plan.rejections == (rejection,)
    assert plan.rejected_count == 1
    assert plan.source_file_name == "f.csv"


@pytest.mark.parametrize("size", [0, 4, 6])
def test_wrong_roster_size_raises_before_allocation(size: int):
    targets = [DistributionTarget(target_id=str(i), display_name=f"T{i}") for i in range(size)]
    with pytest.raises(TargetCountError) as e:
        plan_distribution(_records(10), targets)
    assert e.value.actual == size
    assert e.value.expected == 5
    assert e.value.kind == "TARGET_COUNT"


def test_allocation_sizes_helper():
    assert allocation_sizes(23) == [5, 5, 5, 4, 4]
    assert allocation_sizes(7, targets=3) == [3, 2, 2]
    with pytest.raises(ValueError):
        allocation_sizes(3, targets=0)
    with pytest.raises(ValueError):
        allocation_sizes(-1)
