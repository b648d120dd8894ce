"""Online booking lead-time policy."""

from datetime import date, datetime, timezone

import pytest

from wakepark.core.enums import LeadTimeMode, SlotStatus
from wakepark.core.exceptions import LeadTimeException, ValidationException
from wakepark.models.facility import LeadTimeSettings
from wakepark.services.lead_time_service import LeadTimeService

# Monday 2025-05-19 12:00 in Riga.
NOW = datetime(2025, 5, 19, 9, 0, tzinfo=timezone.utc)
TUESDAY = date(2025, 5, 20)
WEDNESDAY = date(2025, 5, 21)


@pytest.fixture
def service(db):
    return LeadTimeService(db, timezone_str="Europe/Riga")


class TestCheck:
    def test_no_settings_means_off(self, service, local_instant):
        result = service.check(local_instant(TUESDAY, "10:00"), NOW)
        assert result.allowed is True
        assert result.mode == LeadTimeMode.OFF

    def test_off_mode(self, service, local_instant):
        service.update_settings(LeadTimeMode.OFF, 5)
        assert service.check(local_instant(TUESDAY, "10:00"), NOW).allowed is True

    def test_enforced(self, service, local_instant):
        service.update_settings(LeadTimeMode.ENFORCED, 2)

        too_soon = service.check(local_instant(TUESDAY, "10:00"), NOW)
        assert too_soon.allowed is False
        assert too_soon.reason == "Online booking requires 2 days lead time"
        assert service.check(local_instant(WEDNESDAY, "08:00"), NOW).allowed is True

    def test_days_are_counted_in_facility_time(self, service):
        """Tuesday 00:30 local is still Monday in UTC."""
        service.update_settings(LeadTimeMode.ENFORCED, 1)
        tuesday_early = datetime(2025, 5, 19, 21, 30, tzinfo=timezone.utc)
        assert service.check(tuesday_early, NOW).allowed is True

    def test_operator_on_site_lifts_restriction(self, service, local_instant):
        service.update_settings(LeadTimeMode.ENFORCED, 7, operator_on_site=True)

        result = service.check(local_instant(TUESDAY, "10:00"), NOW)
        assert result.allowed is True
        assert result.overridden_by == "operator_on_site"

    def test_booking_based_allows_days_with_bookings(self, service, make_slot, local_instant):
        service.update_settings(LeadTimeMode.BOOKING_BASED, 3)
        make_slot(local_instant(TUESDAY, "18:00"), SlotStatus.BOOKED, "WB-2505-0001")

        result = service.check(local_instant(TUESDAY, "10:00"), NOW)
        assert result.allowed is True
        assert result.overridden_by == "existing_booking"
        assert service.check(local_instant(WEDNESDAY, "10:00"), NOW).allowed is False

    def test_booking_based_ignores_available_slots(self, service, make_slot, local_instant):
        service.update_settings(LeadTimeMode.BOOKING_BASED, 3)
        make_slot(local_instant(TUESDAY, "18:00"))

        assert service.check(local_instant(TUESDAY, "10:00"), NOW).allowed is False


class TestEnsureAllowed:
    def test_raises_with_policy_details(self, service, local_instant):
        service.update_settings(LeadTimeMode.ENFORCED, 2)

        with pytest.raises(LeadTimeException) as exc_info:
            service.ensure_allowed(local_instant(TUESDAY, "10:00"), NOW)

        assert exc_info.value.details == {"lead_time_days": 2, "mode": "enforced"}

    def test_passes_when_allowed(self, service, local_instant):
        service.ensure_allowed(local_instant(TUESDAY, "10:00"), NOW)


class TestUpdateSettings:
    def test_negative_days(self, service):
        with pytest.raises(ValidationException):
            service.update_settings(LeadTimeMode.ENFORCED, -1)

    def test_single_row_is_updated(self, service, db):
        service.update_settings(LeadTimeMode.ENFORCED, 2)
        updated = service.update_settings("booking_based", 4, operator_on_site=True)

        assert db.query(LeadTimeSettings).count() == 1
        assert updated.restriction_mode == "booking_based"
        assert updated.lead_time_days == 4
        assert updated.operator_on_site is True
