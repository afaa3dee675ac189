from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models.rejection import RowRejection

"""Fatal error taxonomy for a distribution run.

Each error carries a stable ``kind`` (UPPER_SNAKE, same vocabulary as the
error log ``error_type``) plus a human readable ``detail``. The caller maps
kinds to exit codes / user messages; the core never does.

Per-row validation failures are NOT errors (see RowRejection).
"""

__all__ = [
    "DistributionError",
    "FormatError",
    "MissingHeadersError",
    "EmptyInputError",
    "NoAcceptedRecordsError",
    "TargetCountError",
]


class DistributionError(Exception):
    """Base class for errors that abort a distribution run."""

    kind = "DISTRIBUTION_ERROR"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class FormatError(DistributionError):
    """Input cannot be decoded as the declared tabular format."""

    kind = "FORMAT_ERROR"


class MissingHeadersError(DistributionError):
    kind = "MISSING_HEADERS"

    def __init__(self, missing: Sequence[str], required: Sequence[str]) -> None:
        self.missing = list(missing)
        self.required = list(required)
        super().__init__(
            f"Invalid headers. Required: {', '.join(self.required)}. "
            f"Missing: {', '.join(self.missing)}"
        )


class EmptyInputError(DistributionError):
    kind = "EMPTY_INPUT"

    def __init__(self, detail: str = "File is empty or has no data rows") -> None:
        super().__init__(detail)


class NoAcceptedRecordsError(DistributionError):
    """Every data row was rejected. Rejections are kept for diagnostics."""

    kind = "NO_ACCEPTED_RECORDS"

    def __init__(self, rejections: Sequence[RowRejection]) -> None:
        self.rejections = tuple(rejections)
        super().__init__(f"No valid records found ({len(self.rejections)} rows rejected)")


class TargetCountError(DistributionError):
    kind = "TARGET_COUNT"

    def __init__(self, actual: int, expected: int) -> None:
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Exactly {expected} active agents are required for distribution, "
            f"found {actual}"
        )
