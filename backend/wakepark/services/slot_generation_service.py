# backend/wakepark/services/slot_generation_service.py
"""
Persists slot drafts for the visible booking horizon.

Generation is additive: windows that already have a row (in any status) are
skipped, so running it twice creates nothing the second time. Regeneration
first deletes future rows that are not booked, then generates again; booked
rows are never touched and are reported back.
"""

from datetime import date, datetime, timedelta, timezone
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import SlotStatus
from ..core.exceptions import ValidationException
from ..core.timezone_service import TimezoneService
from ..repositories.factory import RepositoryFactory
from ..schemas.slot import SlotDraft, SlotGenerationReport
from .base import BaseService
from .pricing_service import PricingService
from .slot_grid import SlotGridGenerator

logger = logging.getLogger(__name__)


class SlotGenerationService(BaseService):
    def __init__(
        self,
        db: Session,
        pricing_service: Optional[PricingService] = None,
        timezone_str: Optional[str] = None,
    ):
        super().__init__(db)
        self.timezone_str = timezone_str or settings.facility_timezone
        self.slot_repository = RepositoryFactory.create_slot_repository(db)
        self.hours_repository = RepositoryFactory.create_operating_hours_repository(db)
        self.pricing_service = pricing_service or PricingService(db, timezone_str=self.timezone_str)
        self.grid_generator = SlotGridGenerator(
            timezone_str=self.timezone_str, price_resolver=self.pricing_service.price_for
        )

    def _horizon(self, now: datetime, weeks: Optional[int]) -> Tuple[date, date]:
        weeks = settings.visibility_weeks if weeks is None else weeks
        if weeks < 1:
            raise ValidationException("At least one week must be generated")
        first_day = TimezoneService.local_date(now, self.timezone_str)
        return first_day, first_day + timedelta(days=7 * weeks)

    def _drafts_between(self, first_day: date, end_day: date, now: datetime) -> List[SlotDraft]:
        hours = self.hours_repository.get_week_table()
        drafts: List[SlotDraft] = []
        current = first_day
        while current < end_day:
            day_hours = hours[TimezoneService.local_day_index(current)]
            drafts.extend(
                draft
                for draft in self.grid_generator.generate_day_drafts(current, day_hours)
                if draft.start_time >= now
            )
            current += timedelta(days=1)
        return drafts

    def _persist(self, drafts: List[SlotDraft], first_day: date, end_day: date) -> List[int]:
        range_start, _ = TimezoneService.day_bounds(first_day, self.timezone_str)
        range_end, _ = TimezoneService.day_bounds(end_day, self.timezone_str)
        existing = set(self.slot_repository.get_existing_starts(range_start, range_end))

        rows = self.slot_repository.bulk_create(
            [
                {
                    "start_time": draft.start_time,
                    "end_time": draft.end_time,
                    "price": draft.price,
                    "status": SlotStatus.AVAILABLE.value,
                }
                for draft in drafts
                if draft.start_time not in existing
            ]
        )
        return [row.id for row in rows]

    @BaseService.measure_operation("generate_slots")
    def generate(
        self, weeks: Optional[int] = None, now: Optional[datetime] = None
    ) -> SlotGenerationReport:
        """Persist missing slots from today through ``weeks`` weeks ahead."""
        now = now or datetime.now(timezone.utc)
        first_day, end_day = self._horizon(now, weeks)
        drafts = self._drafts_between(first_day, end_day, now)

        with self.transaction():
            created = self._persist(drafts, first_day, end_day)

        self.log_operation("generate_slots", created_count=len(created), drafts=len(drafts))
        return SlotGenerationReport(start_date=first_day, end_date=end_day, created_slot_ids=created)

    @BaseService.measure_operation("regenerate_slots")
    def regenerate(
        self, weeks: Optional[int] = None, now: Optional[datetime] = None
    ) -> SlotGenerationReport:
        """
        Rebuild future slots after operating hours or pricing changed.

        Available and blocked rows from ``now`` on are deleted; booked rows
        stay and their windows are skipped when regenerating.
        """
        now = now or datetime.now(timezone.utc)
        first_day, end_day = self._horizon(now, weeks)
        self.pricing_service.refresh()
        drafts = self._drafts_between(first_day, end_day, now)

        with self.transaction():
            deleted = self.slot_repository.delete_unbooked_from(now)
            created = self._persist(drafts, first_day, end_day)
            range_end, _ = TimezoneService.day_bounds(end_day, self.timezone_str)
            preserved = [
                slot.id for slot in self.slot_repository.get_booked_in_range(now, range_end)
            ]

        self.log_operation(
            "regenerate_slots",
            deleted_count=deleted,
            created_count=len(created),
            preserved=len(preserved),
        )
        return SlotGenerationReport(
            start_date=first_day,
            end_date=end_day,
            created_slot_ids=created,
            deleted_count=deleted,
            preserved_booked_slot_ids=preserved,
        )
