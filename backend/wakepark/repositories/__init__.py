# backend/wakepark/repositories/__init__.py
"""
Repository layer for the wakepark engine.

Key Components:
- BaseRepository: generic CRUD with SQLAlchemy error translation
- RepositoryFactory: factory for creating repository instances
- SlotRepository: range, overlap and conditional-update queries
- BookingRepository: bookings by id or reference
- OperatingHoursRepository: weekly opening hours keyed by day index
- PricingRuleRepository, LeadTimeSettingsRepository: facility settings

Usage:
    from wakepark.repositories import RepositoryFactory

    repository = RepositoryFactory.create_slot_repository(db)
    slots = repository.get_in_range(week_start, week_end)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .operating_hours_repository import (
    LeadTimeSettingsRepository,
    OperatingHoursRepository,
    PricingRuleRepository,
)
from .slot_repository import SlotRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "LeadTimeSettingsRepository",
    "OperatingHoursRepository",
    "PricingRuleRepository",
    "RepositoryFactory",
    "SlotRepository",
]
