# backend/wakepark/repositories/factory.py
"""
Repository Factory for the wakepark engine.

Provides centralized creation of repository instances so services never
construct repositories with ad hoc arguments.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .operating_hours_repository import (
        LeadTimeSettingsRepository,
        OperatingHoursRepository,
        PricingRuleRepository,
    )
    from .slot_repository import SlotRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_slot_repository(db: Session) -> "SlotRepository":
        from .slot_repository import SlotRepository

        return SlotRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_operating_hours_repository(db: Session) -> "OperatingHoursRepository":
        from .operating_hours_repository import OperatingHoursRepository

        return OperatingHoursRepository(db)

    @staticmethod
    def create_pricing_rule_repository(db: Session) -> "PricingRuleRepository":
        from .operating_hours_repository import PricingRuleRepository

        return PricingRuleRepository(db)

    @staticmethod
    def create_lead_time_settings_repository(db: Session) -> "LeadTimeSettingsRepository":
        from .operating_hours_repository import LeadTimeSettingsRepository

        return LeadTimeSettingsRepository(db)
