"""
Centralized timezone handling for the wakepark engine.

Rules:
- All storage: UTC
- All comparisons: UTC
- All grid positions: facility local wall time
- Weekday arithmetic: canonical local day index, 0 = Monday .. 6 = Sunday
"""

from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Optional, Tuple, Union

import pytz

from .config import settings

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DateLike = Union[date, datetime]


class TimezoneService:
    """Converts between UTC instants and facility wall time."""

    @staticmethod
    def get_timezone(tz_str: Optional[str] = None) -> pytz.BaseTzInfo:
        """Get timezone object, with fallback to the facility timezone."""
        try:
            return pytz.timezone(tz_str or settings.facility_timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {tz_str!r}, using {settings.facility_timezone}")
            return pytz.timezone(settings.facility_timezone)

    @staticmethod
    def local_to_utc(
        local_date: date, local_time: time, timezone_str: Optional[str] = None
    ) -> datetime:
        """
        Convert a facility wall-clock date/time to a UTC instant.

        Uses the timezone rules valid on ``local_date`` (not today).
        Ambiguous times (autumn fall-back) resolve to the first occurrence.
        Times inside the spring-forward gap resolve to the transition instant,
        the earliest valid instant after the gap.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        naive_dt = datetime.combine(local_date, local_time)

        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            local_dt = tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            local_dt = tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            return TimezoneService._first_instant_after_gap(tz, naive_dt)

        return local_dt.astimezone(timezone.utc)

    @staticmethod
    def _first_instant_after_gap(tz: pytz.BaseTzInfo, naive_dt: datetime) -> datetime:
        # The two candidate offsets bracket the transition instant.
        candidates = sorted(
            tz.localize(naive_dt, is_dst=flag).astimezone(timezone.utc) for flag in (True, False)
        )
        instant, upper = candidates
        while instant < upper:
            if instant.astimezone(tz).replace(tzinfo=None) >= naive_dt:
                break
            instant += timedelta(minutes=1)
        logger.debug(f"Wall time {naive_dt} does not exist in {tz.zone}; resolved to {instant}")
        return instant

    @staticmethod
    def utc_to_local(utc_dt: datetime, timezone_str: Optional[str] = None) -> datetime:
        """Convert UTC datetime to facility local time."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=timezone.utc)

        tz = TimezoneService.get_timezone(timezone_str)
        return utc_dt.astimezone(tz)

    @staticmethod
    def to_local_wall(utc_dt: datetime, timezone_str: Optional[str] = None) -> Tuple[date, time]:
        """Split an instant into its local (date, time) wall-clock parts."""
        local_dt = TimezoneService.utc_to_local(utc_dt, timezone_str)
        return local_dt.date(), local_dt.time().replace(tzinfo=None)

    @staticmethod
    def local_date(value: DateLike, timezone_str: Optional[str] = None) -> date:
        """Local calendar date of an instant; plain dates pass through."""
        if isinstance(value, datetime):
            return TimezoneService.utc_to_local(value, timezone_str).date()
        return value

    @staticmethod
    def local_day_index(value: DateLike, timezone_str: Optional[str] = None) -> int:
        """
        Canonical local day index: 0 = Monday .. 6 = Sunday.

        Instants are converted to facility time first, so a slot at 23:30 UTC on
        a Sunday in summer lands on Monday.
        """
        return TimezoneService.local_date(value, timezone_str).weekday()

    @staticmethod
    def week_start_date(value: DateLike, timezone_str: Optional[str] = None) -> date:
        """Local date of the Monday that starts the week containing ``value``."""
        local = TimezoneService.local_date(value, timezone_str)
        return local - timedelta(days=TimezoneService.local_day_index(local))

    @staticmethod
    def day_bounds(local_date: date, timezone_str: Optional[str] = None) -> Tuple[datetime, datetime]:
        """UTC bounds ``[start, end)`` of one local calendar day."""
        start = TimezoneService.local_to_utc(local_date, time(0, 0), timezone_str)
        end = TimezoneService.local_to_utc(local_date + timedelta(days=1), time(0, 0), timezone_str)
        return start, end

    @staticmethod
    def week_bounds(value: DateLike, timezone_str: Optional[str] = None) -> Tuple[datetime, datetime]:
        """
        UTC bounds ``[start, end)`` of the local Monday-start week.

        The end is computed from the following Monday's local midnight, not by
        adding 168 hours, so weeks containing a DST change are 167 or 169 hours.
        """
        monday = TimezoneService.week_start_date(value, timezone_str)
        start = TimezoneService.local_to_utc(monday, time(0, 0), timezone_str)
        end = TimezoneService.local_to_utc(monday + timedelta(days=7), time(0, 0), timezone_str)
        return start, end

    @staticmethod
    def validate_time_exists(
        local_date: date, local_time: time, timezone_str: Optional[str] = None
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate that a wall time exists on a given date.

        Returns:
            (is_valid, error_message)
        """
        tz = TimezoneService.get_timezone(timezone_str)
        naive_dt = datetime.combine(local_date, local_time)

        try:
            tz.localize(naive_dt, is_dst=None)
            return (True, None)
        except pytz.exceptions.AmbiguousTimeError:
            # Time exists twice (fall back) - acceptable
            return (True, None)
        except pytz.exceptions.NonExistentTimeError:
            return (
                False,
                f"The time {local_time.strftime('%H:%M')} does not exist on "
                f"{local_date} due to Daylight Saving Time. Please select a different time.",
            )

    @staticmethod
    def hours_until(start_utc: datetime, now: Optional[datetime] = None) -> float:
        """Hours from now (UTC) until ``start_utc``."""
        now_utc = now or datetime.now(timezone.utc)
        return (start_utc - now_utc).total_seconds() / 3600

    @staticmethod
    def format_for_display(utc_dt: datetime, timezone_str: Optional[str] = None) -> str:
        """
        Format an instant in facility time.

        Returns: e.g., "Friday 14:00"
        """
        local_dt = TimezoneService.utc_to_local(utc_dt, timezone_str)
        return f"{DAY_NAMES[local_dt.weekday()]} {local_dt.strftime('%H:%M')}"
