"""Request and response schema validation."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from pydantic import ValidationError
import pytest

from wakepark.core.enums import BulkAction, ExperienceLevel, SlotStatus
from wakepark.schemas import (
    BookingCreate,
    BulkActionRequest,
    CustomerDetails,
    GridCell,
    OperatingHoursDay,
    SlotDraft,
    SlotTarget,
    SlotView,
    TimeWindow,
    WeekGrid,
)

START = datetime(2025, 5, 20, 7, 0, tzinfo=timezone.utc)


class TestCustomerDetails:
    def test_normalization(self):
        customer = CustomerDetails(
            customer_name="  Liga Kalnina ",
            phone_number="+371 (20) 00-0002",
            email=" Liga@Example.LV ",
        )
        assert customer.customer_name == "Liga Kalnina"
        assert customer.phone_number == "37120000002"
        assert customer.email == "liga@example.lv"
        assert customer.experience_level == ExperienceLevel.BEGINNER

    @pytest.mark.parametrize("phone", ["12345", "abc1234567890", "1" * 16])
    def test_invalid_phone(self, phone):
        with pytest.raises(ValidationError):
            CustomerDetails(customer_name="Liga", phone_number=phone)

    @pytest.mark.parametrize("email", ["not-an-email", "liga@example..lv", "liga@@example.lv", "liga@.lv"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationError):
            CustomerDetails(customer_name="Liga", phone_number="37120000002", email=email)

    def test_blank_email_becomes_none(self):
        assert CustomerDetails(customer_name="Liga", phone_number="37120000002", email=" ").email is None

    def test_short_name(self):
        with pytest.raises(ValidationError):
            CustomerDetails(customer_name=" L ", phone_number="37120000002")

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            CustomerDetails(customer_name="Liga", phone_number="37120000002", vip=True)


class TestBookingCreate:
    def test_ephemeral_ids_rejected(self):
        with pytest.raises(ValidationError, match="persisted"):
            BookingCreate(customer_name="Liga", phone_number="37120000002", slot_ids=[3, -5])

    def test_duplicates_rejected(self):
        with pytest.raises(ValidationError, match="unique"):
            BookingCreate(customer_name="Liga", phone_number="37120000002", slot_ids=[3, 3])

    def test_at_least_one_slot(self):
        with pytest.raises(ValidationError):
            BookingCreate(customer_name="Liga", phone_number="37120000002", slot_ids=[])


class TestSlotSchemas:
    def test_draft_must_be_thirty_minutes(self):
        with pytest.raises(ValidationError):
            SlotDraft(start_time=START, end_time=START + timedelta(minutes=45), price=Decimal("25"))

    def test_naive_datetimes_rejected(self):
        with pytest.raises(ValidationError, match="timezone-aware"):
            TimeWindow(start_time=datetime(2025, 5, 20, 7, 0), end_time=START + timedelta(hours=1))

    def test_window_order(self):
        with pytest.raises(ValidationError):
            TimeWindow(start_time=START, end_time=START)

    def test_slot_target_zero_id(self):
        with pytest.raises(ValidationError):
            SlotTarget(id=0)

    def test_slot_target_ephemeral_flag(self):
        assert SlotTarget(id=-1, start_time=START, end_time=START + timedelta(minutes=30)).is_ephemeral
        assert not SlotTarget(id=12).is_ephemeral

    def test_bulk_request_action_values(self):
        request = BulkActionRequest(action="make-available", targets=[{"id": 4}], price="20")
        assert request.action is BulkAction.MAKE_AVAILABLE
        assert request.price == Decimal("20")

    def test_bulk_request_unknown_action(self):
        with pytest.raises(ValidationError):
            BulkActionRequest(action="reserve", targets=[{"id": 4}])

    def test_week_grid_keyed_lookup(self):
        view = SlotView(
            id=-28_000_000,
            start_time=START,
            end_time=START + timedelta(minutes=30),
            status=SlotStatus.UNALLOCATED,
        )
        grid = WeekGrid(
            week_start=date(2025, 5, 19),
            start_utc=START,
            end_utc=START + timedelta(days=7),
            timezone="Europe/Riga",
            first_hour=8,
            last_hour=23,
            cells=[GridCell(day_index=1, hour=10, minute=0, local_date=date(2025, 5, 20), slot=view)],
        )

        assert grid.cell(1, 10, 0).slot.id == view.id
        assert grid.cell(1, 10, 30) is None
        assert grid.persisted_slots() == []


class TestOperatingHoursDay:
    def test_close_after_open(self):
        with pytest.raises(ValidationError):
            OperatingHoursDay(day_index=2, open_time=time(22, 0), close_time=time(8, 0))

    def test_closed_day_ignores_hours(self):
        day = OperatingHoursDay(day_index=0, open_time=time(8, 0), close_time=time(8, 0), is_closed=True)
        assert day.is_closed

    def test_day_index_range(self):
        with pytest.raises(ValidationError):
            OperatingHoursDay(day_index=7, open_time=time(8, 0), close_time=time(22, 0))
