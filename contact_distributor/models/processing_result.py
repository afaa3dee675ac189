from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Batch processing result models (one CLI invocation over many files)."""


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome."""
    file_name: str
    status: str  # success/failed
    accepted_records: int
    rejected_rows: int
    elapsed_seconds: float
    plan_id: str | None = None
    error_type: str | None = None  # DistributionError.kind on failure
    error: str | None = None
    counts: tuple[int, ...] = ()  # 成功時のエージェント別件数


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results used for the SUMMARY line and exit code."""
    success_files: int
    failed_files: int
    total_accepted: int
    total_rejected: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
