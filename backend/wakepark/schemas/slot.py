# backend/wakepark/schemas/slot.py
"""
Slot schemas for the wakepark engine.

A ``SlotView`` is what the presentation layer sees for one grid cell: either a
persisted row (positive id) or an ephemeral ``unallocated`` cell (negative id)
carrying the exact start/end it would have if materialized.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import Field, PrivateAttr, field_validator, model_validator

from ..core.enums import BulkAction, SlotPosition, SlotStatus
from ._strict_base import StrictModel, StrictRequestModel
from .customer import CustomerDetails

SLOT_LENGTH = timedelta(minutes=30)

CellKey = Tuple[int, int, int]


def _require_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        raise ValueError("datetimes must be timezone-aware")
    return value


class SlotDraft(StrictModel):
    """A slot computed from operating hours that has not been persisted."""

    start_time: datetime
    end_time: datetime
    price: Decimal

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(v)

    @model_validator(mode="after")
    def validate_length(self) -> "SlotDraft":
        if self.end_time - self.start_time != SLOT_LENGTH:
            raise ValueError("slot drafts must be exactly 30 minutes long")
        return self


class SlotView(StrictModel):
    """One slot as handed to the presentation layer."""

    id: int
    start_time: datetime
    end_time: datetime
    price: Optional[Decimal] = None
    status: SlotStatus
    booking_reference: Optional[str] = None
    block_reason: Optional[str] = None
    position: Optional[SlotPosition] = None

    @property
    def is_ephemeral(self) -> bool:
        return self.id < 0


class GridCell(StrictModel):
    """A grid position keyed by (local day index, hour, minute)."""

    day_index: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)
    minute: int
    local_date: date
    slot: SlotView

    @property
    def key(self) -> CellKey:
        return (self.day_index, self.hour, self.minute)


class WeekGrid(StrictModel):
    """
    One local Monday-start week of cells.

    ``cells`` is ordered by day index, then wall time. Use ``cell()`` for keyed
    access.
    """

    week_start: date
    start_utc: datetime
    end_utc: datetime
    timezone: str
    first_hour: int
    last_hour: int
    cells: List[GridCell] = Field(default_factory=list)

    _index: Dict[CellKey, GridCell] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object) -> None:
        self._index = {cell.key: cell for cell in self.cells}

    def cell(self, day_index: int, hour: int, minute: int) -> Optional[GridCell]:
        return self._index.get((day_index, hour, minute))

    def slots(self) -> List[SlotView]:
        return [cell.slot for cell in self.cells]

    def persisted_slots(self) -> List[SlotView]:
        return [cell.slot for cell in self.cells if not cell.slot.is_ephemeral]


class ConflictRange(StrictModel):
    """An existing booked slot that overlaps a candidate window."""

    slot_id: int
    booking_reference: Optional[str]
    start_time: datetime
    end_time: datetime


class TimeWindow(StrictRequestModel):
    """A candidate ``[start, end)`` window."""

    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(v)

    @model_validator(mode="after")
    def validate_order(self) -> "TimeWindow":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotTarget(StrictRequestModel):
    """
    A bulk-action target.

    Positive ids refer to persisted rows. Negative ids are ephemeral cells and
    must carry their own start/end, which are used verbatim on materialization.
    """

    id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(v)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: int) -> int:
        if v == 0:
            raise ValueError("slot id 0 is neither persisted nor ephemeral")
        return v

    @property
    def is_ephemeral(self) -> bool:
        return self.id < 0


class BulkActionRequest(StrictRequestModel):
    """Operator request to apply one action to a batch of cells."""

    action: BulkAction
    targets: List[SlotTarget] = Field(default_factory=list)
    reason: Optional[str] = None
    price: Optional[Decimal] = None
    customer: Optional[CustomerDetails] = None


class BulkActionResult(StrictModel):
    action: BulkAction
    slot_ids: List[int] = Field(default_factory=list)
    created_slot_ids: List[int] = Field(default_factory=list)
    deleted_slot_ids: List[int] = Field(default_factory=list)
    booking_reference: Optional[str] = None
    deleted_booking_references: List[str] = Field(default_factory=list)


class SlotGenerationReport(StrictModel):
    """Outcome of persisting drafts for the visible weeks."""

    start_date: date
    end_date: date
    created_slot_ids: List[int] = Field(default_factory=list)
    deleted_count: int = 0
    preserved_booked_slot_ids: List[int] = Field(default_factory=list)
