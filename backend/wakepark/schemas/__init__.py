"""Pydantic schemas exchanged between the engine and its callers."""

from .booking import BookingCreate, BookingDetails, BookingResponse, BookingRunSummary
from .customer import CustomerDetails
from .facility import BookingStats, LeadTimeCheck, OperatingHoursDay
from .slot import (
    BulkActionRequest,
    BulkActionResult,
    ConflictRange,
    GridCell,
    SlotDraft,
    SlotGenerationReport,
    SlotTarget,
    SlotView,
    TimeWindow,
    WeekGrid,
)

__all__ = [
    "BookingCreate",
    "BookingDetails",
    "BookingResponse",
    "BookingRunSummary",
    "BookingStats",
    "BulkActionRequest",
    "BulkActionResult",
    "ConflictRange",
    "CustomerDetails",
    "GridCell",
    "LeadTimeCheck",
    "OperatingHoursDay",
    "SlotDraft",
    "SlotGenerationReport",
    "SlotTarget",
    "SlotView",
    "TimeWindow",
    "WeekGrid",
]
