# backend/wakepark/services/lead_time_service.py
"""
Online booking lead-time policy.

Modes:
- off: no restriction
- enforced: the booked day must be at least ``lead_time_days`` local days ahead
- booking_based: like enforced, unless the day already has a booking

``operator_on_site`` lifts the restriction in every mode. Operator bulk actions
never consult this service.
"""

from datetime import date, datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import LeadTimeMode
from ..core.exceptions import LeadTimeException, ValidationException
from ..core.timezone_service import TimezoneService
from ..models.facility import LeadTimeSettings
from ..repositories.factory import RepositoryFactory
from ..schemas.facility import LeadTimeCheck
from .base import BaseService

logger = logging.getLogger(__name__)


class LeadTimeService(BaseService):
    def __init__(self, db: Session, timezone_str: Optional[str] = None):
        super().__init__(db)
        self.timezone_str = timezone_str
        self.repository = RepositoryFactory.create_lead_time_settings_repository(db)
        self.slot_repository = RepositoryFactory.create_slot_repository(db)

    @BaseService.measure_operation("update_lead_time_settings")
    def update_settings(
        self,
        restriction_mode: LeadTimeMode,
        lead_time_days: int,
        operator_on_site: bool = False,
    ) -> LeadTimeSettings:
        if lead_time_days < 0:
            raise ValidationException("lead_time_days cannot be negative")

        with self.transaction():
            current = self.repository.get_or_create()
            current.restriction_mode = LeadTimeMode(restriction_mode).value
            current.lead_time_days = lead_time_days
            current.operator_on_site = operator_on_site
            self.repository.db.flush()

        self.log_operation(
            "update_lead_time_settings",
            restriction_mode=current.restriction_mode,
            lead_time_days=lead_time_days,
            operator_on_site=operator_on_site,
        )
        return current

    @BaseService.measure_operation("check_lead_time")
    def check(self, slot_start: datetime, now: Optional[datetime] = None) -> LeadTimeCheck:
        """Whether a customer may book the local day containing ``slot_start``."""
        current = self.repository.get_current()
        if current is None:
            return LeadTimeCheck(allowed=True, mode=LeadTimeMode.OFF)

        mode = LeadTimeMode(current.restriction_mode)
        days = current.lead_time_days
        if mode is LeadTimeMode.OFF:
            return LeadTimeCheck(allowed=True, mode=mode, lead_time_days=days)
        if current.operator_on_site:
            return LeadTimeCheck(
                allowed=True, mode=mode, lead_time_days=days, overridden_by="operator_on_site"
            )

        booking_day = TimezoneService.local_date(slot_start, self.timezone_str)
        today = TimezoneService.local_date(now or datetime.now(timezone.utc), self.timezone_str)
        if (booking_day - today).days >= days:
            return LeadTimeCheck(allowed=True, mode=mode, lead_time_days=days)

        if mode is LeadTimeMode.BOOKING_BASED and self._day_has_booking(booking_day):
            return LeadTimeCheck(
                allowed=True, mode=mode, lead_time_days=days, overridden_by="existing_booking"
            )

        return LeadTimeCheck(
            allowed=False,
            mode=mode,
            lead_time_days=days,
            reason=f"Online booking requires {days} days lead time",
        )

    def _day_has_booking(self, local_day: date) -> bool:
        start, end = TimezoneService.day_bounds(local_day, self.timezone_str)
        return self.slot_repository.has_booked_between(start, end)

    def ensure_allowed(self, slot_start: datetime, now: Optional[datetime] = None) -> None:
        result = self.check(slot_start, now)
        if not result.allowed:
            self.logger.info(
                f"Lead time rejected booking for {slot_start.isoformat()}",
                extra={"mode": result.mode.value, "lead_time_days": result.lead_time_days},
            )
            raise LeadTimeException(result.lead_time_days, result.mode.value)
