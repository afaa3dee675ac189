from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""RowRejection model: a data row that failed validation.

Rejections are recoverable. They are reported next to the plan (and in the
error log) but never promoted to ContactRecord.
"""

__all__ = [
    "RejectionReason",
    "RowRejection",
    "FIRST_DATA_ROW",
]

# 1 行目はヘッダ。最初のデータ行は 2 行目
FIRST_DATA_ROW = 2


class RejectionReason(Enum):
    """Why a row was rejected. The first failing rule wins."""
    MISSING_REQUIRED = "missing-required"
    PHONE_TOO_SHORT = "phone-too-short"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def error_type(self) -> str:
        """UPPER_SNAKE label used in the JSON Lines error log."""
        return self.name


_MESSAGES = {
    RejectionReason.MISSING_REQUIRED: "Missing FirstName or Phone",
    RejectionReason.PHONE_TOO_SHORT: "Phone number too short",
}


@dataclass(frozen=True)
class RowRejection:
    """One rejected data row.

    row_number follows the sheet: header is row 1, first data row is row 2.
    first_name / phone / notes hold the normalized values that were checked.
    """
    row_number: int
    reason: RejectionReason
    raw_fields: dict[str, Any] = field(default_factory=dict)
    first_name: str = ""
    phone: str = ""
    notes: str = ""

    @property
    def reason_code(self) -> str:
        return self.reason.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "reason": self.reason_code,
            "error": self.reason.message,
            "data": {"firstName": self.first_name, "phone": self.phone, "notes": self.notes},
        }
