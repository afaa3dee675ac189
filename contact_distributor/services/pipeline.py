from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config.loader import DistributeConfig
from ..errors import DistributionError, EmptyInputError, NoAcceptedRecordsError
from ..logging.error_log import ErrorLogBuffer
from ..models.distribution import DistributionPlan
from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord
from ..models.processing_result import FileStat, ProcessingResult
from ..models.rejection import RowRejection
from ..tabular.reader import SUPPORTED_EXTENSIONS, TableFormat, detect_format, parse_table, require_headers
from .planner import plan_distribution
from .progress import ProgressTracker
from .recorder import DistributionRecorder
from .roster import RosterSelector
from .validator import validate_rows

"""Distribution pipeline.

Single upload (``run_distribution``):

    bytes -> parse -> header check -> empty check -> validate
          -> no-accepted check -> roster -> plan -> record

Fatal errors (DistributionError subclasses) abort before anything is
recorded. Rejected rows are data: they travel inside the plan (and the
error log) and never stop the batch.

Batch (``process_all``): one independent run per file from the CLI or the
configured source directory, each in its own transaction when a cursor is
given, with one error-log flush at the end.
"""

__all__ = [
    "ProcessingError",
    "Upload",
    "DistributionOutcome",
    "run_distribution",
    "scan_input_files",
    "process_all",
]

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


class ProcessingError(Exception):
    """Batch-level fatal error (e.g. source directory unusable)."""


@dataclass(frozen=True)
class Upload:
    file_name: str
    content: bytes
    table_format: TableFormat

    @classmethod
    def from_path(cls, path: Path) -> Upload:
        """Read a file from disk, deriving the format from its extension."""
        table_format = detect_format(path.name)
        return cls(file_name=path.name, content=path.read_bytes(), table_format=table_format)


@dataclass(frozen=True)
class DistributionOutcome:
    plan_id: str
    plan: DistributionPlan


def _log_rejections(error_log: ErrorLogBuffer | None, file_name: str, rejections: Iterable[RowRejection]) -> None:
    if error_log is None:
        return
    for r in rejections:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                row=r.row_number,
                error_type=r.reason.error_type,
                message=r.reason.message,
            )
        )


def run_distribution(
    upload: Upload,
    selector: RosterSelector,
    recorder: DistributionRecorder,
    uploaded_by: str,
    error_log: ErrorLogBuffer | None = None,
) -> DistributionOutcome:
    """Parse, validate, plan and record one uploaded file.

    Raises:
        FormatError, MissingHeadersError, EmptyInputError,
        NoAcceptedRecordsError, TargetCountError: fatal, nothing recorded.
        Recorder exceptions propagate unchanged.
    """
    try:
        table = parse_table(upload.content, upload.table_format)
        require_headers(table.columns)
        if not table.rows:
            raise EmptyInputError()

        result = validate_rows(table.rows)
        _log_rejections(error_log, upload.file_name, result.rejected)
        if not result.accepted:
            raise NoAcceptedRecordsError(result.rejected)

        targets = selector.select()
        plan = plan_distribution(
            result.accepted,
            targets,
            source_file_name=upload.file_name,
            rejections=result.rejected,
        )
    except DistributionError as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(file=upload.file_name, row=FILE_LEVEL_ROW, error_type=e.kind, message=e.detail)
            )
        raise

    plan_id = recorder.record(plan, uploaded_by)
    logger.info(
        f"{upload.file_name}: distributed accepted={plan.total_accepted} "
        f"rejected={plan.rejected_count} counts={plan.counts} plan_id={plan_id}"
    )
    return DistributionOutcome(plan_id=plan_id, plan=plan)


def scan_input_files(directory: Path) -> list[Path]:
    """List .csv / .xlsx files in ``directory`` (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing, not a directory, or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _execute(cursor: Any, statement: str) -> None:
    if cursor is not None:
        cursor.execute(statement)


def _rejected_since(error_log: ErrorLogBuffer, mark: int) -> int:
    return sum(1 for r in error_log.records[mark:] if r.row != FILE_LEVEL_ROW)


def _failed(path: Path, started: datetime, error_type: str, error: str, rejected: int = 0) -> FileStat:
    return FileStat(
        file_name=path.name,
        status=STATUS_FAILED,
        accepted_records=0,
        rejected_rows=rejected,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
        error_type=error_type,
        error=error,
    )


def _process_single_file(
    path: Path,
    config: DistributeConfig,
    selector: RosterSelector,
    recorder: DistributionRecorder,
    uploaded_by: str,
    error_log: ErrorLogBuffer,
    cursor: Any,
) -> FileStat:
    """Run one file inside its own transaction (when a cursor is given)."""
    started = datetime.now(UTC)

    # サイズ制限・読み込みは呼び出し側 (ここ) の責務
    try:
        size = path.stat().st_size
        if size > config.max_upload_bytes:
            detail = f"file is {size} bytes, limit is {config.max_upload_bytes}"
            error_log.append(ErrorRecord.create(path.name, FILE_LEVEL_ROW, "FILE_TOO_LARGE", detail))
            logger.error(f"{path.name}: {detail}")
            return _failed(path, started, "FILE_TOO_LARGE", detail)
        upload = Upload.from_path(path)
    except DistributionError as e:
        error_log.append(ErrorRecord.create(path.name, FILE_LEVEL_ROW, e.kind, e.detail))
        logger.error(f"{path.name}: {e.detail}")
        return _failed(path, started, e.kind, e.detail)
    except OSError as e:
        error_log.append(ErrorRecord.create(path.name, FILE_LEVEL_ROW, "READ_ERROR", str(e)))
        logger.error(f"{path.name}: cannot read file: {e}")
        return _failed(path, started, "READ_ERROR", str(e))

    # 検証後に失敗しても、エラーログに出た行数を rejected に数える
    log_mark = len(error_log)
    try:
        _execute(cursor, "BEGIN")
        outcome = run_distribution(upload, selector, recorder, uploaded_by, error_log=error_log)
        _execute(cursor, "COMMIT")
    except DistributionError as e:
        _execute(cursor, "ROLLBACK")
        logger.error(f"{path.name}: {e.detail}")
        return _failed(path, started, e.kind, e.detail, rejected=_rejected_since(error_log, log_mark))
    except Exception as e:  # recorder / DB failure: this file fails, the batch goes on
        try:
            _execute(cursor, "ROLLBACK")
        except Exception as rollback_e:
            error_log.append(
                ErrorRecord.create(path.name, FILE_LEVEL_ROW, "TRANSACTION_ROLLBACK_ERROR", str(rollback_e))
            )
        error_log.append(ErrorRecord.create(path.name, FILE_LEVEL_ROW, "PROCESSING_ERROR", str(e)))
        logger.error(f"{path.name}: processing failed: {e}")
        return _failed(path, started, "PROCESSING_ERROR", str(e), rejected=_rejected_since(error_log, log_mark))

    plan = outcome.plan
    return FileStat(
        file_name=path.name,
        status=STATUS_SUCCESS,
        accepted_records=plan.total_accepted,
        rejected_rows=plan.rejected_count,
        elapsed_seconds=(datetime.now(UTC) - started).total_seconds(),
        plan_id=outcome.plan_id,
        counts=tuple(plan.counts),
    )


def process_all(
    config: DistributeConfig,
    selector: RosterSelector,
    recorder: DistributionRecorder,
    uploaded_by: str,
    files: Iterable[Path] | None = None,
    cursor: Any = None,
) -> ProcessingResult:
    """Distribute every given file (or every file in ``source_directory``).

    Args:
        files: explicit file list; None scans ``config.source_directory``
        cursor: database cursor for per-file BEGIN/COMMIT/ROLLBACK (None = mock mode)

    Raises:
        ProcessingError: the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(Path(config.log_directory))

    paths = list(files) if files is not None else scan_input_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    success_count = failed_count = total_accepted = total_rejected = 0

    with ProgressTracker(len(paths)) as progress:
        for path in paths:
            progress.start_file(path)
            stat = _process_single_file(path, config, selector, recorder, uploaded_by, error_log, cursor)
            file_stats.append(stat)

            total_rejected += stat.rejected_rows
            if stat.status == STATUS_SUCCESS:
                success_count += 1
                total_accepted += stat.accepted_records
            else:
                failed_count += 1
            progress.finish_file(accepted=total_accepted, rejected=total_rejected, failed=failed_count)

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning(f"failed to write error log: {e}")
    else:
        if log_path is not None:
            logger.info(f"error log written: {log_path}")

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_accepted=total_accepted,
        total_rejected=total_rejected,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
