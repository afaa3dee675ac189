from __future__ import annotations

from dataclasses import dataclass

"""ContactRecord domain model.

A ContactRecord only exists once a raw row has passed every validation rule;
it is never built first and patched afterwards.
"""

__all__ = [
    "ContactRecord",
    "MIN_PHONE_DIGITS",
]

MIN_PHONE_DIGITS = 7


@dataclass(frozen=True)
class ContactRecord:
    """Validated contact assigned to exactly one agent.

    Attributes:
        first_name: Trimmed, never empty
        phone: ASCII digits only, at least MIN_PHONE_DIGITS long (no upper bound)
        notes: Trimmed, may be empty
    """
    first_name: str
    phone: str
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.first_name:
            raise ValueError("first_name must not be empty")
        if not (self.phone.isascii() and self.phone.isdigit()):
            raise ValueError(f"phone must contain digits only: {self.phone!r}")
        if len(self.phone) < MIN_PHONE_DIGITS:
            raise ValueError(f"phone shorter than {MIN_PHONE_DIGITS} digits: {self.phone!r}")

    def to_dict(self) -> dict[str, str]:
        return {"firstName": self.first_name, "phone": self.phone, "notes": self.notes}
