from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

"""RawRow representation shared by the table parser and the validator.

A RawRow maps every header of the source table to the cell found on that
line. Keys are never absent; empty cells are "".
"""

__all__ = [
    "RawRow",
    "cell_text",
]

RawRow = dict[str, Any]


def cell_text(value: Any) -> str:
    """Render a cell as text the way it was typed into the sheet.

    - None / NaN -> ""
    - integral floats lose the ".0" suffix (phone numbers stored as numbers)
    - date / datetime -> ISO format
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)
