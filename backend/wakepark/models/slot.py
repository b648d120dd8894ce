# backend/wakepark/models/slot.py
"""
Slot model for the wakepark engine.

A slot is one persisted 30-minute window on the cable. Grid cells without a
row are ephemeral ``unallocated`` slots and never reach this table.

The only link to a booking is ``booking_reference``: a weak back-reference,
set while the slot is booked and cleared on release. There is no join table.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String, Text, UniqueConstraint

from ..core.enums import PERSISTED_SLOT_STATUSES, SlotStatus
from ..database import Base
from .types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_STATUS_LIST = ", ".join(f"'{value}'" for value in PERSISTED_SLOT_STATUSES)


class Slot(Base):
    """One persisted 30-minute window."""

    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, autoincrement=True)

    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)

    booking_reference = Column(String(32), nullable=True)
    block_reason = Column(Text, nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("start_time", name="uq_slots_start_time"),
        CheckConstraint("end_time > start_time", name="ck_slots_time_order"),
        CheckConstraint(f"status IN ({_STATUS_LIST})", name="ck_slots_status"),
        CheckConstraint(
            "(status = 'booked') = (booking_reference IS NOT NULL)",
            name="ck_slots_reference_only_when_booked",
        ),
        Index("ix_slots_status_start", "status", "start_time"),
        Index("ix_slots_booking_reference", "booking_reference"),
    )

    @property
    def slot_status(self) -> SlotStatus:
        return SlotStatus(self.status)

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def unit_price(self) -> Decimal:
        return Decimal(self.price)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start_time < end and self.end_time > start

    def __repr__(self) -> str:
        reference: Optional[str] = self.booking_reference
        return (
            f"<Slot {self.id} {self.start_time.isoformat()} {self.status}"
            f"{' ' + reference if reference else ''}>"
        )
