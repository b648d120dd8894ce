"""
Tests for SlotGridGenerator.

No database: persisted slots are transient model instances.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from wakepark.core.enums import SlotPosition, SlotStatus
from wakepark.core.exceptions import ValidationException
from wakepark.models.slot import Slot
from wakepark.schemas.facility import OperatingHoursDay
from wakepark.services.slot_grid import SlotGridGenerator, ephemeral_slot_id

RIGA = "Europe/Riga"


def _hours(open_time=time(8, 0), close_time=time(22, 0), closed_days=(0,)):
    return {
        day: OperatingHoursDay(
            day_index=day,
            open_time=open_time,
            close_time=close_time,
            is_closed=day in closed_days,
        )
        for day in range(7)
    }


def _slot(slot_id, start, status=SlotStatus.AVAILABLE, reference=None):
    return Slot(
        id=slot_id,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        price=Decimal("25"),
        status=status.value,
        booking_reference=reference,
    )


@pytest.fixture
def generator():
    return SlotGridGenerator(timezone_str=RIGA, padding_hours=1)


class TestGenerateWindow:
    def test_end_time_window(self, generator):
        drafts = generator.generate_window(date(2025, 5, 23), time(14, 0), end_time=time(15, 30))

        assert len(drafts) == 3
        assert drafts[0].start_time == datetime(2025, 5, 23, 11, 0, tzinfo=timezone.utc)
        assert drafts[-1].end_time == datetime(2025, 5, 23, 12, 30, tzinfo=timezone.utc)

    def test_partial_trailing_step_gets_whole_slot(self, generator):
        drafts = generator.generate_window(date(2025, 5, 23), time(14, 0), duration_minutes=45)
        assert len(drafts) == 2

    def test_end_before_start_rolls_to_next_day(self, generator):
        drafts = generator.generate_window(date(2025, 5, 23), time(23, 0), end_time=time(0, 30))

        assert len(drafts) == 3
        assert drafts[-1].start_time == datetime(2025, 5, 23, 21, 0, tzinfo=timezone.utc)

    def test_successive_slots_step_across_spring_forward(self, generator):
        """02:00 EET + 2h on 2025-03-30 walks through the missing 03:00 hour."""
        drafts = generator.generate_window(date(2025, 3, 30), time(2, 0), duration_minutes=120)

        first = datetime(2025, 3, 30, 0, 0, tzinfo=timezone.utc)
        assert [draft.start_time for draft in drafts] == [
            first + timedelta(minutes=30 * step) for step in range(4)
        ]

    def test_misaligned_start(self, generator):
        with pytest.raises(ValidationException, match="30-minute boundary"):
            generator.generate_window(date(2025, 5, 23), time(14, 15), duration_minutes=60)

    @pytest.mark.parametrize(
        "kwargs",
        [{}, {"end_time": time(15, 0), "duration_minutes": 60}],
    )
    def test_exactly_one_bound(self, generator, kwargs):
        with pytest.raises(ValidationException, match="exactly one"):
            generator.generate_window(date(2025, 5, 23), time(14, 0), **kwargs)

    def test_non_positive_duration(self, generator):
        with pytest.raises(ValidationException):
            generator.generate_window(date(2025, 5, 23), time(14, 0), duration_minutes=0)

    def test_price_resolver(self):
        generator = SlotGridGenerator(
            timezone_str=RIGA,
            price_resolver=lambda start: Decimal("35") if start.hour >= 14 else Decimal("25"),
        )
        drafts = generator.generate_window(date(2025, 5, 23), time(16, 30), duration_minutes=60)
        assert [draft.price for draft in drafts] == [Decimal("25"), Decimal("35")]

    def test_default_price_is_facility_minimum(self, generator):
        drafts = generator.generate_window(date(2025, 5, 23), time(14, 0), duration_minutes=30)
        assert drafts[0].price == Decimal("15")


class TestGenerateDayDrafts:
    def test_open_day(self, generator):
        drafts = generator.generate_day_drafts(date(2025, 5, 20), _hours()[1])
        assert len(drafts) == 28

    def test_closed_day(self, generator):
        assert generator.generate_day_drafts(date(2025, 5, 19), _hours()[0]) == []


class TestBuildWeekGrid:
    def test_cells_cover_opening_span_with_padding(self, generator):
        grid = generator.build_week_grid(date(2025, 5, 21), [], _hours())

        assert grid.week_start == date(2025, 5, 19)
        assert (grid.first_hour, grid.last_hour) == (8, 23)
        assert len(grid.cells) == 7 * 15 * 2
        assert all(cell.slot.status == SlotStatus.UNALLOCATED for cell in grid.cells)

    def test_ephemeral_ids_are_deterministic(self, generator):
        first = generator.build_week_grid(date(2025, 5, 21), [], _hours())
        second = generator.build_week_grid(date(2025, 5, 25), [], _hours())

        assert [c.slot.id for c in first.cells] == [c.slot.id for c in second.cells]
        cell = first.cell(1, 10, 30)
        assert cell.slot.id == ephemeral_slot_id(cell.slot.start_time) < 0
        assert cell.slot.start_time == datetime(2025, 5, 20, 7, 30, tzinfo=timezone.utc)
        assert cell.slot.end_time - cell.slot.start_time == timedelta(minutes=30)

    def test_persisted_slot_lands_on_local_cell(self, generator):
        friday_14 = datetime(2025, 5, 23, 11, 0, tzinfo=timezone.utc)
        grid = generator.build_week_grid(
            date(2025, 5, 19),
            [_slot(7, friday_14, SlotStatus.BOOKED, "WB-2505-0001")],
            _hours(),
            positions={7: SlotPosition.FIRST},
        )

        cell = grid.cell(4, 14, 0)
        assert cell.slot.id == 7
        assert cell.slot.status == SlotStatus.BOOKED
        assert cell.slot.position == SlotPosition.FIRST
        assert [view.id for view in grid.persisted_slots()] == [7]

    def test_late_utc_slot_is_next_local_day(self, generator):
        """Sunday 21:30 UTC is Monday 00:30 in Riga."""
        late = datetime(2025, 5, 18, 21, 30, tzinfo=timezone.utc)
        grid = generator.build_week_grid(date(2025, 5, 19), [_slot(3, late)], _hours())

        assert grid.first_hour == 0
        assert grid.cell(0, 0, 30).slot.id == 3

    def test_slots_outside_week_are_ignored(self, generator):
        next_week = datetime(2025, 5, 27, 7, 0, tzinfo=timezone.utc)
        grid = generator.build_week_grid(date(2025, 5, 19), [_slot(9, next_week)], _hours())
        assert grid.persisted_slots() == []

    def test_spring_forward_gap_has_no_cells(self, generator):
        grid = generator.build_week_grid(
            date(2025, 3, 24), [], _hours(open_time=time(0, 0), close_time=time(23, 30), closed_days=())
        )

        assert grid.end_utc - grid.start_utc == timedelta(hours=167)
        assert grid.cell(6, 3, 0) is None
        assert grid.cell(6, 3, 30) is None
        assert grid.cell(6, 4, 0) is not None
        sunday = [cell for cell in grid.cells if cell.day_index == 6]
        assert len(sunday) == 46

    def test_fall_back_duplicate_keeps_first_occurrence(self, generator):
        first = datetime(2025, 10, 26, 0, 0, tzinfo=timezone.utc)
        second = datetime(2025, 10, 26, 1, 0, tzinfo=timezone.utc)
        grid = generator.build_week_grid(
            date(2025, 10, 20),
            [_slot(1, first), _slot(2, second)],
            _hours(open_time=time(0, 0), close_time=time(23, 30), closed_days=()),
        )

        assert grid.cell(6, 3, 0).slot.id == 1
        assert [view.id for view in grid.persisted_slots()] == [1]

    def test_all_days_closed_without_slots(self, generator):
        grid = generator.build_week_grid(date(2025, 5, 19), [], _hours(closed_days=range(7)))
        assert grid.cells == []
