# backend/wakepark/services/slot_grid.py
"""
Slot grid generation.

Two outputs:
- booking windows: an ordered run of 30-minute drafts from an anchor wall time,
- week grids: one cell per (local day x 30-minute step) across the week's
  opening span, with ephemeral ``unallocated`` cells where no row exists.

Successive slots are produced by adding one slot length to the previous start,
never by dividing the total duration.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..core.config import settings
from ..core.enums import SlotPosition, SlotStatus
from ..core.exceptions import ValidationException
from ..core.timezone_service import TimezoneService
from ..models.slot import Slot
from ..schemas.facility import OperatingHoursDay
from ..schemas.slot import SLOT_LENGTH, CellKey, GridCell, SlotDraft, SlotView, WeekGrid

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30

PriceResolver = Callable[[datetime], Decimal]


def ephemeral_slot_id(start_utc: datetime) -> int:
    """Deterministic negative id for a cell starting at ``start_utc``."""
    return -(int(start_utc.timestamp()) // 60)


def to_slot_view(slot: Slot, position: Optional[SlotPosition] = None) -> SlotView:
    return SlotView(
        id=slot.id,
        start_time=slot.start_time,
        end_time=slot.end_time,
        price=slot.price,
        status=slot.slot_status,
        booking_reference=slot.booking_reference,
        block_reason=slot.block_reason,
        position=position,
    )


class SlotGridGenerator:
    """Builds slot drafts and week grids in facility local time."""

    def __init__(
        self,
        timezone_str: Optional[str] = None,
        price_resolver: Optional[PriceResolver] = None,
        padding_hours: Optional[int] = None,
    ):
        self.timezone_str = timezone_str or settings.facility_timezone
        self.price_resolver = price_resolver
        self.padding_hours = settings.grid_padding_hours if padding_hours is None else padding_hours

    def _price_for(self, start_utc: datetime) -> Decimal:
        if self.price_resolver is None:
            return settings.minimum_slot_price
        return self.price_resolver(start_utc)

    def generate_window(
        self,
        anchor_date: date,
        start_time: time,
        end_time: Optional[time] = None,
        duration_minutes: Optional[int] = None,
    ) -> List[SlotDraft]:
        """
        Drafts covering a booking window that starts at ``anchor_date start_time``.

        An ``end_time`` at or before ``start_time`` rolls into the next day.
        The count is ``ceil(duration / 30)``, so a partial trailing step still
        gets a whole slot.
        """
        if (end_time is None) == (duration_minutes is None):
            raise ValidationException("Provide exactly one of end_time or duration_minutes")
        if start_time.minute % SLOT_MINUTES or start_time.second or start_time.microsecond:
            raise ValidationException(
                f"Start time {start_time.strftime('%H:%M')} is not on a 30-minute boundary",
                details={"start_time": start_time.isoformat()},
            )

        if end_time is not None:
            start_wall = datetime.combine(anchor_date, start_time)
            end_date = anchor_date if end_time > start_time else anchor_date + timedelta(days=1)
            end_wall = datetime.combine(end_date, end_time)
            duration_minutes = int((end_wall - start_wall).total_seconds() // 60)

        if duration_minutes is None or duration_minutes <= 0:
            raise ValidationException("Window duration must be positive")

        count = math.ceil(duration_minutes / SLOT_MINUTES)
        current = TimezoneService.local_to_utc(anchor_date, start_time, self.timezone_str)
        drafts = []
        for _ in range(count):
            drafts.append(
                SlotDraft(
                    start_time=current,
                    end_time=current + SLOT_LENGTH,
                    price=self._price_for(current),
                )
            )
            current = current + SLOT_LENGTH
        return drafts

    def generate_day_drafts(self, local_date: date, hours: OperatingHoursDay) -> List[SlotDraft]:
        """Drafts for one day's opening hours; closed days produce nothing."""
        if hours.is_closed:
            return []
        return self.generate_window(local_date, hours.open_time, end_time=hours.close_time)

    def _hour_span(
        self, hours: Dict[int, OperatingHoursDay], persisted_keys: Iterable[CellKey]
    ) -> Tuple[int, int]:
        open_days = [day for day in hours.values() if not day.is_closed]
        first_hour: Optional[int] = None
        last_hour: Optional[int] = None
        if open_days:
            first_hour = min(day.open_time.hour for day in open_days)
            last_close = max(
                day.close_time.hour + (1 if day.close_time.minute else 0) for day in open_days
            )
            last_hour = last_close + self.padding_hours

        # Rows outside the configured hours still need a cell.
        for _, hour, _ in persisted_keys:
            first_hour = hour if first_hour is None else min(first_hour, hour)
            last_hour = hour + 1 if last_hour is None else max(last_hour, hour + 1)

        if first_hour is None or last_hour is None:
            return 0, 0
        return first_hour, min(last_hour, 24)

    def build_week_grid(
        self,
        week_anchor: Union[date, datetime],
        persisted_slots: Iterable[Slot],
        hours: Dict[int, OperatingHoursDay],
        positions: Optional[Dict[int, Optional[SlotPosition]]] = None,
    ) -> WeekGrid:
        """
        Grid of the local Monday-start week containing ``week_anchor``.

        Cells without a persisted slot hold an ephemeral ``unallocated`` slot
        whose negative id is derived from its start, so rebuilding an unchanged
        week yields identical cells.
        """
        positions = positions or {}
        week_start = TimezoneService.week_start_date(week_anchor, self.timezone_str)
        start_utc, end_utc = TimezoneService.week_bounds(week_start, self.timezone_str)

        by_key: Dict[CellKey, Slot] = {}
        for slot in persisted_slots:
            if not (start_utc <= slot.start_time < end_utc):
                continue
            local_date, local_time = TimezoneService.to_local_wall(slot.start_time, self.timezone_str)
            if local_time.minute % SLOT_MINUTES:
                logger.warning(f"Slot {slot.id} starts off the 30-minute grid at {local_time}")
                continue
            key = (TimezoneService.local_day_index(local_date), local_time.hour, local_time.minute)
            if key in by_key:
                # Fall-back repeats an hour of wall time; the first occurrence wins.
                logger.warning(f"Slot {slot.id} shares grid cell {key} with slot {by_key[key].id}")
                continue
            by_key[key] = slot

        first_hour, last_hour = self._hour_span(hours, by_key.keys())

        cells: List[GridCell] = []
        for day_index in range(7):
            local_date = week_start + timedelta(days=day_index)
            for hour in range(first_hour, last_hour):
                for minute in (0, SLOT_MINUTES):
                    key = (day_index, hour, minute)
                    slot = by_key.get(key)
                    if slot is not None:
                        view = to_slot_view(slot, positions.get(slot.id))
                    else:
                        wall = time(hour, minute)
                        exists, _ = TimezoneService.validate_time_exists(
                            local_date, wall, self.timezone_str
                        )
                        if not exists:
                            continue
                        cell_start = TimezoneService.local_to_utc(local_date, wall, self.timezone_str)
                        view = SlotView(
                            id=ephemeral_slot_id(cell_start),
                            start_time=cell_start,
                            end_time=cell_start + SLOT_LENGTH,
                            price=self._price_for(cell_start),
                            status=SlotStatus.UNALLOCATED,
                        )
                    cells.append(
                        GridCell(
                            day_index=day_index,
                            hour=hour,
                            minute=minute,
                            local_date=local_date,
                            slot=view,
                        )
                    )

        return WeekGrid(
            week_start=week_start,
            start_utc=start_utc,
            end_utc=end_utc,
            timezone=self.timezone_str,
            first_hour=first_hour,
            last_hour=last_hour,
            cells=cells,
        )
