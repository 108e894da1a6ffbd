from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from salonbook.constants import (
    EMPLOYEE_ANY,
    MINUTES_PER_DAY,
    SLOT_ROUNDING_MINUTES,
    WEEK_LENGTH_DAYS,
    WEEK_STARTS_ON,
)


@dataclass(frozen=True)
class EmployeeFilter:
    """Either "any employee" (employee_id is None) or one specific employee."""

    employee_id: str | None = None

    @property
    def is_any(self) -> bool:
        return self.employee_id is None

    def matches(self, employee_id: str | None) -> bool:
        if self.is_any:
            return True
        return employee_id == self.employee_id


ANY_EMPLOYEE = EmployeeFilter()


def resolve_employee_filter(raw: str | None) -> EmployeeFilter:
    if raw is None:
        return ANY_EMPLOYEE
    value = raw.strip()
    if not value or value.lower() == EMPLOYEE_ANY:
        return ANY_EMPLOYEE
    return EmployeeFilter(employee_id=value)


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def to_local(moment: datetime, tz_name: str) -> datetime:
    # Naive values are already salon wall-clock time.
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def time_to_minutes(value: str | time) -> int:
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isascii() and part.isdigit() for part in parts):
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    total = hours * 60 + minutes
    if not 0 <= minutes < 60 or not 0 <= seconds < 60 or total * 60 + seconds > MINUTES_PER_DAY * 60:
        raise ValueError(f"Invalid time: {value!r}")
    return total


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def round_up(minutes: int, step: int = SLOT_ROUNDING_MINUTES) -> int:
    return -(-minutes // step) * step


def minutes_into_day(day: date, moment: datetime) -> int:
    """Minutes between the start of ``day`` and ``moment``.

    Values fall outside 0..1440 for moments on other days, which lets callers
    clip overnight bookings against business hours instead of wrapping them.
    """
    midnight = datetime.combine(day, time.min)
    delta = moment.replace(tzinfo=None) - midnight
    return int(delta.total_seconds() // 60)


def in_date_range(value: date, start: date, end: date) -> bool:
    return start <= value <= end


def start_of_week(value: date) -> date:
    offset = (value.weekday() - WEEK_STARTS_ON) % WEEK_LENGTH_DAYS
    return value - timedelta(days=offset)


def clamp_week_start(requested: date | None, today: date) -> date:
    current = start_of_week(today)
    if requested is None:
        return current
    return max(start_of_week(requested), current)


def previous_week_start(week_start: date, today: date) -> date | None:
    candidate = week_start - timedelta(days=WEEK_LENGTH_DAYS)
    if candidate < start_of_week(today):
        return None
    return candidate


def week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(WEEK_LENGTH_DAYS)]


def normalize_minutes(value: object) -> int:
    if value is None or value == "":
        return 0
    try:
        if isinstance(value, (int, float)):
            return max(int(value), 0)
        return max(int(str(value).strip()), 0)
    except (ValueError, OverflowError):
        return 0
