from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from psycopg2.extras import Json

from ..db.batch_insert import batch_insert
from ..models.contact_record import ContactRecord
from ..models.distribution import AgentAllocation, DistributionPlan, DistributionTarget
from ..models.rejection import RejectionReason, RowRejection

"""Distribution recorders: persist a plan and read it back for review.

The pipeline only calls ``record``; ``get`` and ``list_recent`` serve the
review side (history listing with pagination, single distribution detail).
Recorder failures propagate to the caller unchanged.
"""

__all__ = [
    "DistributionRecorder",
    "StoredDistribution",
    "DistributionPage",
    "InMemoryDistributionRecorder",
    "PostgresDistributionRecorder",
]


@dataclass(frozen=True)
class StoredDistribution:
    plan_id: str
    plan: DistributionPlan
    uploaded_by: str
    created_at: datetime


@dataclass(frozen=True)
class DistributionPage:
    """One page of history, newest first."""
    items: list[StoredDistribution]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class DistributionRecorder(Protocol):
    def record(self, plan: DistributionPlan, uploaded_by: str) -> str:
        """Persist ``plan`` and return its opaque identifier."""
        ...

    def get(self, plan_id: str) -> StoredDistribution | None: ...

    def list_recent(self, page: int = 1, limit: int = 10) -> DistributionPage: ...


def _check_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")


class InMemoryDistributionRecorder:
    """Process-local recorder (mock mode and tests)."""

    def __init__(self) -> None:
        self._stored: dict[str, StoredDistribution] = {}

    def __len__(self) -> int:
        return len(self._stored)

    def record(self, plan: DistributionPlan, uploaded_by: str) -> str:
        plan_id = uuid.uuid4().hex
        self._stored[plan_id] = StoredDistribution(
            plan_id=plan_id,
            plan=plan,
            uploaded_by=uploaded_by,
            created_at=datetime.now(UTC),
        )
        return plan_id

    def get(self, plan_id: str) -> StoredDistribution | None:
        return self._stored.get(plan_id)

    def list_recent(self, page: int = 1, limit: int = 10) -> DistributionPage:
        _check_paging(page, limit)
        # dict は挿入順なので逆順 = 新しい順
        newest_first = list(reversed(self._stored.values()))
        skip = (page - 1) * limit
        return DistributionPage(
            items=newest_first[skip:skip + limit],
            page=page,
            limit=limit,
            total=len(newest_first),
        )


def _rejection_to_json(rejection: RowRejection) -> dict[str, Any]:
    data = rejection.to_dict()
    data["raw"] = rejection.raw_fields
    return data


def _rejection_from_json(data: dict[str, Any]) -> RowRejection:
    normalized = data.get("data") or {}
    return RowRejection(
        row_number=int(data["row"]),
        reason=RejectionReason(data["reason"]),
        raw_fields=dict(data.get("raw") or {}),
        first_name=normalized.get("firstName", ""),
        phone=normalized.get("phone", ""),
        notes=normalized.get("notes", ""),
    )


class PostgresDistributionRecorder:
    """Recorder backed by the tables in db/schema.sql.

    Writes happen on the caller's cursor; committing is the caller's job
    (the CLI commits once per file).
    """

    def __init__(self, cursor: Any, page_size: int = 1000) -> None:
        self._cursor = cursor
        self._page_size = page_size

    def record(self, plan: DistributionPlan, uploaded_by: str) -> str:
        cur = self._cursor
        cur.execute(
            "INSERT INTO distributions "
            "(file_name, total_records, skipped_count, uploaded_by, validation_errors) "
            "VALUES (%s, %s, %s, %s, %s) RETURNING id",
            (
                plan.source_file_name,
                plan.total_accepted,
                plan.rejected_count,
                uploaded_by,
                Json([_rejection_to_json(r) for r in plan.rejections]),
            ),
        )
        distribution_id = cur.fetchone()[0]

        allocations = batch_insert(
            cur,
            "distribution_allocations",
            ["distribution_id", "position", "agent_id", "agent_name", "record_count"],
            [
                (distribution_id, pos, a.target.target_id, a.target.display_name, a.count)
                for pos, a in enumerate(plan.allocations)
            ],
            returning=["position", "id"],
            page_size=self._page_size,
        )
        allocation_ids = dict(allocations.returned_values or [])

        batch_insert(
            cur,
            "distribution_records",
            ["allocation_id", "position", "first_name", "phone", "notes"],
            [
                (allocation_ids[pos], i, r.first_name, r.phone, r.notes)
                for pos, a in enumerate(plan.allocations)
                for i, r in enumerate(a.records)
            ],
            page_size=self._page_size,
        )
        return str(distribution_id)

    def get(self, plan_id: str) -> StoredDistribution | None:
        try:
            distribution_id = int(plan_id)
        except (TypeError, ValueError):
            return None  # serial id 以外は存在しない扱い
        cur = self._cursor
        cur.execute(
            "SELECT id, file_name, total_records, uploaded_by, validation_errors, created_at "
            "FROM distributions WHERE id = %s",
            (distribution_id,),
        )
        head = cur.fetchone()
        if head is None:
            return None
        distribution_id, file_name, total_records, uploaded_by, errors, created_at = head

        cur.execute(
            "SELECT a.position, a.agent_id, a.agent_name, r.first_name, r.phone, r.notes "
            "FROM distribution_allocations a "
            "LEFT JOIN distribution_records r ON r.allocation_id = a.id "
            "WHERE a.distribution_id = %s "
            "ORDER BY a.position, r.position",
            (distribution_id,),
        )
        targets: dict[int, DistributionTarget] = {}
        records: dict[int, list[ContactRecord]] = {}
        for position, agent_id, agent_name, first_name, phone, notes in cur.fetchall():
            if position not in targets:
                targets[position] = DistributionTarget(target_id=agent_id, display_name=agent_name)
                records[position] = []
            if first_name is not None:  # LEFT JOIN: 0 件割当のエージェント
                records[position].append(ContactRecord(first_name=first_name, phone=phone, notes=notes))

        plan = DistributionPlan(
            source_file_name=file_name,
            total_accepted=total_records,
            allocations=tuple(
                AgentAllocation(target=targets[p], records=tuple(records[p])) for p in sorted(targets)
            ),
            rejections=tuple(_rejection_from_json(e) for e in errors or []),
        )
        return StoredDistribution(
            plan_id=str(distribution_id),
            plan=plan,
            uploaded_by=uploaded_by,
            created_at=created_at,
        )

    def list_recent(self, page: int = 1, limit: int = 10) -> DistributionPage:
        _check_paging(page, limit)
        cur = self._cursor
        cur.execute("SELECT count(*) FROM distributions")
        total = cur.fetchone()[0]
        cur.execute(
            "SELECT id FROM distributions ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
            (limit, (page - 1) * limit),
        )
        ids = [row[0] for row in cur.fetchall()]
        items = [stored for stored in (self.get(str(i)) for i in ids) if stored is not None]
        return DistributionPage(items=items, page=page, limit=limit, total=total)
