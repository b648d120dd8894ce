"""
Database models for the wakepark engine.

The models are organized by functionality:
- Slots: persisted 30-minute windows
- Bookings: purchases referenced by their slots
- Facility: operating hours, pricing rules and lead-time settings
"""

from .booking import Booking
from .facility import LeadTimeSettings, OperatingHours, PricingRule
from .slot import Slot

__all__ = [
    "Booking",
    "LeadTimeSettings",
    "OperatingHours",
    "PricingRule",
    "Slot",
]
