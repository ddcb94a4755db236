# File: utils/dt_utils.py
"""Date and time utilities for HydraCat.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed.
   Uses standard library: datetime, zoneinfo, dateutil.

Functions:
    - dt_now_local: Get current datetime in local timezone
    - is_valid_time_slot: Validate an "HH:mm" slot string
    - parse_time_slot: Parse an "HH:mm" slot into a time
    - format_time_slot: Format a time/datetime as an "HH:mm" slot
    - slot_datetime: Combine a date and slot into an aware datetime
    - window_dates: Dates covered by the rolling scheduling window
    - evaluate_grace_period: Classify a slot as scheduled/immediate/missed
    - calculate_followup_time: Followup instant for an initial reminder
    - next_weekly_summary_time: Next Monday 09:00
    - weekly_summary_week_starts: Candidate week starts for cancel sweeps
    - days_between: Whole calendar days between two dates
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from enum import StrEnum
import logging
import re
from zoneinfo import ZoneInfo

# Third-party date utilities (no HA dependency)
from dateutil.relativedelta import MO, relativedelta

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# These mirror const.py values but are defined locally for purity.
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

TIME_SLOT_PATTERN = re.compile(r"^\d{2}:\d{2}$")
TIME_SLOT_FORMAT = "%H:%M"

DEFAULT_GRACE_PERIOD = timedelta(minutes=30)
DEFAULT_IMMEDIATE_DELAY = timedelta(seconds=1)
DEFAULT_FOLLOWUP_OFFSET = timedelta(hours=2)

WEEKLY_SUMMARY_HOUR = 9
WEEKLY_SUMMARY_SWEEP_WEEKS = 4


class SchedulingDecision(StrEnum):
    """Outcome of evaluating a slot's target time against now."""

    SCHEDULED = "scheduled"
    IMMEDIATE = "immediate"
    MISSED = "missed"


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz
    _LOGGER.debug("Default timezone set to %s", tz)


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware)."""
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


# ==============================================================================
# Time Slots
# ==============================================================================


def is_valid_time_slot(time_slot: object) -> bool:
    """Return True if the value is an "HH:mm" string with hour 00-23 and minute 00-59.

    Example:
        >>> is_valid_time_slot("08:30")
        True
        >>> is_valid_time_slot("24:00")
        False
        >>> is_valid_time_slot("8:30")
        False
    """
    if not isinstance(time_slot, str) or not TIME_SLOT_PATTERN.match(time_slot):
        return False
    hour_str, minute_str = time_slot.split(":")
    return 0 <= int(hour_str) <= 23 and 0 <= int(minute_str) <= 59


def parse_time_slot(time_slot: str) -> time:
    """Parse an "HH:mm" slot into a `datetime.time`.

    Raises:
        ValueError: If the slot is not a valid "HH:mm" string.
    """
    if not is_valid_time_slot(time_slot):
        raise ValueError(f"Invalid time slot '{time_slot}' (expected HH:mm)")
    hour_str, minute_str = time_slot.split(":")
    return time(int(hour_str), int(minute_str))


def format_time_slot(value: time | datetime) -> str:
    """Format a time (or the time-of-day of a datetime) as an "HH:mm" slot."""
    return value.strftime(TIME_SLOT_FORMAT)


def slot_datetime(day: date, time_slot: str, tz: ZoneInfo | None = None) -> datetime:
    """Combine a calendar date and an "HH:mm" slot into an aware datetime.

    Example:
        >>> slot_datetime(date(2025, 1, 15), "08:00", ZoneInfo("Europe/Berlin"))
        datetime.datetime(2025, 1, 15, 8, 0, tzinfo=zoneinfo.ZoneInfo(key='Europe/Berlin'))
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(day, parse_time_slot(time_slot)).replace(tzinfo=tz_info)


def window_dates(today: date, days: int) -> list[date]:
    """Return the dates of the rolling window, today first."""
    return [today + timedelta(days=offset) for offset in range(days)]


def days_between(start: date, end: date) -> int:
    """Return the number of whole calendar days from start to end (may be negative)."""
    return (end - start).days


# ==============================================================================
# Scheduling Calculations
# ==============================================================================


def evaluate_grace_period(
    target: datetime,
    now: datetime,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD,
) -> SchedulingDecision:
    """Decide how a reminder slot should be handled relative to now.

    - Target strictly in the future: SCHEDULED at the target time.
    - Target in the past by at most the grace period (inclusive): IMMEDIATE.
    - Target further in the past: MISSED (not scheduled at all).
    """
    if target > now:
        return SchedulingDecision.SCHEDULED
    if now - target <= grace_period:
        return SchedulingDecision.IMMEDIATE
    return SchedulingDecision.MISSED


def immediate_fire_time(
    now: datetime, delay: timedelta = DEFAULT_IMMEDIATE_DELAY
) -> datetime:
    """Return the fire time for a late slot inside the grace window."""
    return now + delay


def calculate_followup_time(
    initial: datetime, offset: timedelta = DEFAULT_FOLLOWUP_OFFSET
) -> datetime:
    """Return the followup instant for an initial reminder."""
    return initial + offset


def next_weekly_summary_time(
    now: datetime, hour: int = WEEKLY_SUMMARY_HOUR
) -> datetime:
    """Return the next Monday at the summary hour.

    If today is Monday and the summary hour has not passed yet, today is used.

    Example:
        >>> next_weekly_summary_time(datetime(2025, 1, 15, 12, 0))  # Wednesday
        datetime.datetime(2025, 1, 20, 9, 0)
    """
    candidate = (now + relativedelta(weekday=MO(0))).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )
    if candidate <= now:
        candidate = candidate + relativedelta(weeks=1)
    return candidate


def weekly_summary_week_starts(
    now: datetime, weeks: int = WEEKLY_SUMMARY_SWEEP_WEEKS
) -> list[date]:
    """Return the week-start dates a weekly summary could be scheduled for."""
    first = next_weekly_summary_time(now)
    return [(first + relativedelta(weeks=offset)).date() for offset in range(weeks)]
