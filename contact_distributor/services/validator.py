from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.contact_record import MIN_PHONE_DIGITS, ContactRecord
from ..models.raw_row import RawRow, cell_text
from ..models.rejection import FIRST_DATA_ROW, RejectionReason, RowRejection

"""Record validation: RawRow sequence -> (accepted, rejected).

Rules run in a fixed order and the first failing rule decides the reason:

1. normalize: FirstName / Notes trimmed, Phone stripped to digits
2. FirstName or Phone empty      -> missing-required
3. Phone shorter than 7 digits   -> phone-too-short
4. otherwise accept

Pure function of its input: no I/O, no logging, no shared state.
"""

__all__ = [
    "ValidationResult",
    "normalize_row",
    "validate_rows",
]

# ASCII 0-9 のみを数字とみなす (全角・アラビア数字などは除去)
_NON_DIGITS = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class ValidationResult:
    accepted: tuple[ContactRecord, ...] = field(default_factory=tuple)
    rejected: tuple[RowRejection, ...] = field(default_factory=tuple)


def normalize_row(row: RawRow) -> tuple[str, str, str]:
    """Return (first_name, phone_digits, notes) for one raw row."""
    first_name = cell_text(row.get("FirstName") or "").strip()
    phone = _NON_DIGITS.sub("", cell_text(row.get("Phone") or ""))
    notes = cell_text(row.get("Notes") or "").strip()
    return first_name, phone, notes


def _check(first_name: str, phone: str) -> RejectionReason | None:
    if not first_name or not phone:
        return RejectionReason.MISSING_REQUIRED
    if len(phone) < MIN_PHONE_DIGITS:
        return RejectionReason.PHONE_TOO_SHORT
    return None


def validate_rows(rows: Iterable[RawRow]) -> ValidationResult:
    """Split rows into accepted ContactRecords and RowRejections.

    Both outputs keep the original row order. Row numbers follow the sheet
    (header = row 1), so data index 0 is reported as row 2.
    """
    accepted: list[ContactRecord] = []
    rejected: list[RowRejection] = []
    for index, row in enumerate(rows):
        first_name, phone, notes = normalize_row(row)
        reason = _check(first_name, phone)
        if reason is not None:
            rejected.append(
                RowRejection(
                    row_number=index + FIRST_DATA_ROW,
                    reason=reason,
                    raw_fields=dict(row),
                    first_name=first_name,
                    phone=phone,
                    notes=notes,
                )
            )
            continue
        accepted.append(ContactRecord(first_name=first_name, phone=phone, notes=notes))
    return ValidationResult(accepted=tuple(accepted), rejected=tuple(rejected))
