from __future__ import annotations

from typing import Any

from ..models.distribution import DistributionPlan
from ..models.processing_result import ProcessingResult
from .recorder import DistributionPage, StoredDistribution

"""Result surface: JSON-ready views of a plan and the SUMMARY line.

Key names follow the JSON shape of the upload API response
(``fileName``, ``distributions``, ``validationErrors`` ...).
"""

__all__ = [
    "plan_to_dict",
    "summarize_plan",
    "stored_to_dict",
    "page_to_dict",
    "render_summary_line",
]


def plan_to_dict(plan: DistributionPlan, plan_id: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "fileName": plan.source_file_name,
        "totalRecords": plan.total_accepted,
        "distributions": [
            {
                "agentId": a.target.target_id,
                "agentName": a.target.display_name,
                "recordCount": a.count,
                "records": [r.to_dict() for r in a.records],
            }
            for a in plan.allocations
        ],
        "skippedCount": plan.rejected_count,
        "validationErrors": [r.to_dict() for r in plan.rejections],
    }
    if plan_id is not None:
        data["id"] = plan_id
    return data


def summarize_plan(plan: DistributionPlan) -> dict[str, Any]:
    """Per-agent record counts for display."""
    return {
        "totalRecords": plan.total_accepted,
        "skippedCount": plan.rejected_count,
        "agentsUsed": len(plan.allocations),
        "recordsPerAgent": [
            {"agentName": a.target.display_name, "recordCount": a.count}
            for a in plan.allocations
        ],
    }


def stored_to_dict(stored: StoredDistribution) -> dict[str, Any]:
    """Detail view of one recorded distribution."""
    data = plan_to_dict(stored.plan, stored.plan_id)
    data["uploadedBy"] = stored.uploaded_by
    data["createdAt"] = stored.created_at.isoformat()
    return data


def page_to_dict(page: DistributionPage) -> dict[str, Any]:
    """History listing, newest first, with ``pagination`` (current / pages / total / limit)."""
    return {
        "data": [
            {
                "id": s.plan_id,
                "fileName": s.plan.source_file_name,
                "totalRecords": s.plan.total_accepted,
                "skippedCount": s.plan.rejected_count,
                "uploadedBy": s.uploaded_by,
                "createdAt": s.created_at.isoformat(),
                "recordsPerAgent": summarize_plan(s.plan)["recordsPerAgent"],
            }
            for s in page.items
        ],
        "pagination": {
            "current": page.page,
            "pages": page.pages,
            "total": page.total,
            "limit": page.limit,
        },
    }


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line.

    Format:
        SUMMARY files={done}/{total} success={s} failed={f} accepted={a}
        rejected={r} elapsed_sec={e}

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> result = ProcessingResult(
    ...     success_files=1, failed_files=0, total_accepted=23, total_rejected=2,
    ...     start_time=t, end_time=t, elapsed_seconds=2.0,
    ... )
    >>> render_summary_line(1, result)
    'SUMMARY files=1/1 success=1 failed=0 accepted=23 rejected=2 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"accepted={result.total_accepted} "
        f"rejected={result.total_rejected} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
