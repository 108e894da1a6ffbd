"""Availability calculation for the booking calendar.

Turns one day's opening hours, closures, approved leave and existing bookings
into an ordered partition of time blocks, and validates a concrete start time
for a service of a given length. Everything here is pure: inputs are
already-fetched snapshots and ``now`` is always passed in explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from salonbook.constants import (
    BLOCK_ABSENT,
    BLOCK_AVAILABLE,
    BLOCK_BOOKED,
    BLOCK_CLOSED,
    DAY_END,
    DAY_START,
    MINUTES_PER_DAY,
    REASON_EMPLOYEE_ABSENT,
    REASON_SALON_CLOSED,
    REASON_TIME_CONFLICT,
    REASON_TIME_TOO_EARLY,
    REASON_TIME_TOO_LATE,
)
from salonbook.domain import (
    ANY_EMPLOYEE,
    EmployeeFilter,
    clamp_week_start,
    minutes_into_day,
    minutes_to_time,
    previous_week_start,
    round_up,
    time_to_minutes,
    week_days,
)
from salonbook.models import (
    Booking,
    Closure,
    DaySchedule,
    LeaveInterval,
    OpeningHours,
    SlotCheck,
    TimeBlock,
    WeekSchedule,
)

logger = logging.getLogger(__name__)


def compute_day_schedule(
    day: date,
    opening_hours: OpeningHours,
    closures: Iterable[Closure],
    leave: Iterable[LeaveInterval],
    bookings: Iterable[Booking],
    duration_minutes: int,
    employee_filter: EmployeeFilter,
    now: datetime,
) -> DaySchedule:
    today = now.date()
    hours = opening_hours.for_date(day)

    if day < today or _is_closed(day, closures) or hours is None:
        return DaySchedule(
            date=day,
            is_open=False,
            blocks=[TimeBlock(start_time=DAY_START, end_time=DAY_END, status=BLOCK_CLOSED)],
        )

    if _is_on_leave(day, leave, employee_filter):
        return DaySchedule(
            date=day,
            is_open=False,
            open_time=hours.open,
            close_time=hours.close,
            blocks=[TimeBlock(start_time=hours.open, end_time=hours.close, status=BLOCK_ABSENT)],
        )

    day_start = hours.open_minutes
    if day == today:
        day_start = max(day_start, round_up(minutes_into_day(day, now)))
    close = hours.close_minutes
    latest_bookable = close - max(duration_minutes or 0, 0)

    intervals = sorted(_booking_intervals(day, bookings, employee_filter))
    blocks: list[TimeBlock] = []
    cursor = day_start

    for start, end in intervals:
        if end <= day_start or start >= close:
            continue
        if start > cursor:
            # A gap too late for the requested service is still part of the day.
            status = BLOCK_AVAILABLE if cursor <= latest_bookable else BLOCK_CLOSED
            blocks.append(_block(cursor, min(start, close), status))
        booked_start = max(start, cursor)
        booked_end = min(end, close)
        if booked_end > booked_start:
            blocks.append(_block(booked_start, booked_end, BLOCK_BOOKED))
        cursor = max(cursor, end)

    if cursor < close:
        status = BLOCK_AVAILABLE if cursor <= latest_bookable else BLOCK_CLOSED
        blocks.append(_block(cursor, close, status))

    logger.debug("Computed %d blocks for %s", len(blocks), day.isoformat())
    return DaySchedule(
        date=day,
        is_open=True,
        open_time=hours.open,
        close_time=hours.close,
        blocks=blocks,
    )


def compute_week_schedule(
    week_start: date | None,
    opening_hours: OpeningHours,
    closures: Iterable[Closure],
    leave: Iterable[LeaveInterval],
    bookings: Iterable[Booking],
    duration_minutes: int,
    employee_filter: EmployeeFilter,
    now: datetime,
) -> WeekSchedule:
    today = now.date()
    start = clamp_week_start(week_start, today)
    closures = list(closures)
    leave = list(leave)
    bookings = list(bookings)
    days = [
        compute_day_schedule(
            day,
            opening_hours,
            closures,
            leave,
            bookings,
            duration_minutes,
            employee_filter,
            now,
        )
        for day in week_days(start)
    ]
    return WeekSchedule(
        week_start=start,
        previous_week_start=previous_week_start(start, today),
        next_week_start=start + timedelta(days=7),
        days=days,
    )


def is_slot_available(
    day: date,
    start_time: str,
    duration_minutes: int,
    opening_hours: OpeningHours,
    bookings: Iterable[Booking],
    *,
    closures: Iterable[Closure] = (),
    leave: Iterable[LeaveInterval] = (),
    employee_filter: EmployeeFilter = ANY_EMPLOYEE,
    today: date | None = None,
    now: datetime | None = None,
) -> SlotCheck:
    """Check a free-form start time against hours and existing bookings.

    With ``now`` given, ``today`` follows from it and a start on the current
    day must not precede ``now`` rounded up to the quarter hour.
    Raises ``ValueError`` only when ``start_time`` is not an ``HH:MM`` string.
    """
    start = time_to_minutes(start_time)
    duration = max(duration_minutes or 0, 0)
    hours = opening_hours.for_date(day)
    if now is not None:
        today = now.date()

    if hours is None or _is_closed(day, closures) or (today is not None and day < today):
        return SlotCheck(valid=False, reason=REASON_SALON_CLOSED)
    if _is_on_leave(day, leave, employee_filter):
        return SlotCheck(valid=False, reason=REASON_EMPLOYEE_ABSENT)

    if start < hours.open_minutes:
        return SlotCheck(valid=False, reason=REASON_TIME_TOO_EARLY, opens_at=hours.open)
    if now is not None and day == today:
        earliest = round_up(minutes_into_day(day, now))
        if start < earliest:
            return SlotCheck(valid=False, reason=REASON_TIME_TOO_EARLY, opens_at=minutes_to_time(earliest))

    latest_start = hours.close_minutes - duration
    if start > latest_start:
        return SlotCheck(
            valid=False,
            reason=REASON_TIME_TOO_LATE,
            latest_start=minutes_to_time(max(latest_start, 0)),
        )

    end = start + duration
    for existing_start, existing_end in sorted(_booking_intervals(day, bookings, employee_filter)):
        if start < existing_end and end > existing_start:
            return SlotCheck(
                valid=False,
                reason=REASON_TIME_CONFLICT,
                conflict_start=_clock(existing_start),
                conflict_end=_clock(existing_end),
            )
    return SlotCheck(valid=True)


def _is_closed(day: date, closures: Iterable[Closure]) -> bool:
    return any(closure.covers(day) for closure in closures)


def _is_on_leave(day: date, leave: Iterable[LeaveInterval], employee_filter: EmployeeFilter) -> bool:
    if employee_filter.is_any:
        return False
    return any(item.blocks(day, employee_filter.employee_id) for item in leave)


def _booking_intervals(
    day: date,
    bookings: Iterable[Booking],
    employee_filter: EmployeeFilter,
) -> list[tuple[int, int]]:
    intervals: list[tuple[int, int]] = []
    for booking in bookings:
        if not booking.active or not employee_filter.matches(booking.employee_id):
            continue
        start = minutes_into_day(day, booking.start_time)
        end = minutes_into_day(day, booking.end_time)
        if end <= 0 or start >= MINUTES_PER_DAY or end <= start:
            continue
        intervals.append((start, end))
    return intervals


def _block(start: int, end: int, status: str) -> TimeBlock:
    return TimeBlock(start_time=minutes_to_time(start), end_time=minutes_to_time(end), status=status)


def _clock(minutes: int) -> str:
    return minutes_to_time(min(max(minutes, 0), MINUTES_PER_DAY))
