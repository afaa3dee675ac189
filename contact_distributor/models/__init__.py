"""Domain models for the contact distribution pipeline.

Every model is a frozen dataclass; rows flow through the pipeline as
values and are never mutated in place.
"""

from .contact_record import MIN_PHONE_DIGITS, ContactRecord
from .distribution import AgentAllocation, DistributionPlan, DistributionTarget
from .raw_row import RawRow, cell_text
from .rejection import FIRST_DATA_ROW, RejectionReason, RowRejection

__all__ = [
    # Row level
    "RawRow",
    "cell_text",
    "ContactRecord",
    "MIN_PHONE_DIGITS",
    "RejectionReason",
    "RowRejection",
    "FIRST_DATA_ROW",
    # Plan level
    "DistributionTarget",
    "AgentAllocation",
    "DistributionPlan",
]
