# backend/wakepark/core/enums.py
"""
Core enums for the wakepark scheduling engine.

Slot statuses and actions form a closed set. Code that branches on them
dispatches through explicit tables, so an unknown value fails loudly instead
of being styled or handled as a default.
"""

from enum import Enum


class SlotStatus(str, Enum):
    """
    Lifecycle status of a slot.

    UNALLOCATED is never stored: it marks a grid cell with no persisted row.
    """

    AVAILABLE = "available"
    BLOCKED = "blocked"
    BOOKED = "booked"
    UNALLOCATED = "unallocated"

    @property
    def is_persisted(self) -> bool:
        return self is not SlotStatus.UNALLOCATED


PERSISTED_SLOT_STATUSES = tuple(s.value for s in SlotStatus if s.is_persisted)


class SlotAction(str, Enum):
    """Operations that move a slot between statuses."""

    CREATE_BOOKING = "create-booking"
    CANCEL_BOOKING = "cancel-booking"
    BLOCK = "block"
    MAKE_AVAILABLE = "make-available"
    CLEAR = "clear"


class BulkAction(str, Enum):
    """Actions an operator can apply to a batch of grid cells."""

    BLOCK = "block"
    MAKE_AVAILABLE = "make-available"
    CREATE_BOOKING = "create-booking"
    CLEAR = "clear"

    @property
    def slot_action(self) -> SlotAction:
        return SlotAction(self.value)


class SlotPosition(str, Enum):
    """Where a slot sits inside a contiguous run of one booking."""

    FIRST = "first"
    MIDDLE = "middle"
    LAST = "last"


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class LeadTimeMode(str, Enum):
    """
    Online booking lead-time policy.

    OFF: no restriction.
    ENFORCED: bookings need ``lead_time_days`` of notice.
    BOOKING_BASED: like ENFORCED, unless the day already has a booking.
    """

    OFF = "off"
    ENFORCED = "enforced"
    BOOKING_BASED = "booking_based"


class PricingRuleName(str, Enum):
    STANDARD = "standard"
    PEAK = "peak"
