from __future__ import annotations

import logging
from datetime import date as DateType, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from salonbook.constants import DEFAULT_CLOSE, DEFAULT_OPEN, LEAVE_APPROVED, STATUS_CANCELLED, WEEKDAY_NAMES
from salonbook.domain import in_date_range, minutes_to_time, normalize_minutes, time_to_minutes

logger = logging.getLogger(__name__)

BlockStatus = Literal["available", "booked", "absent", "closed"]
AppointmentStatus = Literal["pending", "confirmed", "arrived", "completed", "cancelled", "no_show"]
LeaveStatus = Literal["pending", "approved", "rejected"]
SlotReason = Literal[
    "salon_closed",
    "employee_absent",
    "time_too_early",
    "time_too_late",
    "time_conflict",
]


class DayHours(BaseModel):
    open: str = DEFAULT_OPEN
    close: str = DEFAULT_CLOSE
    closed: bool = False

    @field_validator("open", "close", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any, info) -> str:
        if value in (None, ""):
            return DEFAULT_OPEN if info.field_name == "open" else DEFAULT_CLOSE
        return minutes_to_time(time_to_minutes(value))

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.close)

    @property
    def usable(self) -> bool:
        return not self.closed and self.close_minutes > self.open_minutes


class OpeningHours(BaseModel):
    sunday: DayHours | None = None
    monday: DayHours | None = None
    tuesday: DayHours | None = None
    wednesday: DayHours | None = None
    thursday: DayHours | None = None
    friday: DayHours | None = None
    saturday: DayHours | None = None

    @classmethod
    def from_json(cls, raw: Any) -> "OpeningHours":
        """Build a week from the loose per-weekday blob stored on a salon.

        Unknown keys are ignored; an entry that does not parse is dropped,
        which makes that weekday closed.
        """
        if not isinstance(raw, dict):
            return cls()
        days: dict[str, DayHours] = {}
        for name in WEEKDAY_NAMES:
            entry = raw.get(name)
            if entry is None:
                continue
            try:
                days[name] = DayHours.model_validate(entry)
            except ValidationError:
                logger.warning("Ignoring malformed opening hours for %s: %r", name, entry)
        return cls(**days)

    def for_date(self, day: DateType) -> DayHours | None:
        # date.weekday() is Monday=0; the stored week is Sunday-indexed.
        hours = getattr(self, WEEKDAY_NAMES[(day.weekday() + 1) % 7])
        if hours is None or not hours.usable:
            return None
        return hours


class Closure(BaseModel):
    start_date: DateType
    end_date: DateType
    reason: str | None = None

    def covers(self, day: DateType) -> bool:
        return in_date_range(day, self.start_date, self.end_date)


class LeaveInterval(BaseModel):
    start_date: DateType
    end_date: DateType
    employee_id: str
    status: LeaveStatus = "approved"

    def blocks(self, day: DateType, employee_id: str) -> bool:
        return (
            self.status == LEAVE_APPROVED
            and self.employee_id == employee_id
            and in_date_range(day, self.start_date, self.end_date)
        )


class Booking(BaseModel):
    start_time: datetime
    end_time: datetime
    employee_id: str | None = None
    status: AppointmentStatus = "pending"

    @property
    def active(self) -> bool:
        return self.status != STATUS_CANCELLED


class ServiceRequest(BaseModel):
    duration_minutes: int = 0
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0

    @field_validator("duration_minutes", "buffer_before_minutes", "buffer_after_minutes", mode="before")
    @classmethod
    def _default_zero(cls, value: Any) -> int:
        return normalize_minutes(value)

    @property
    def total_minutes(self) -> int:
        return self.duration_minutes + self.buffer_before_minutes + self.buffer_after_minutes


class TimeBlock(BaseModel):
    start_time: str
    end_time: str
    status: BlockStatus

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)


class DaySchedule(BaseModel):
    date: DateType
    is_open: bool
    open_time: str | None = None
    close_time: str | None = None
    blocks: list[TimeBlock] = Field(default_factory=list)


class WeekSchedule(BaseModel):
    week_start: DateType
    previous_week_start: DateType | None = None
    next_week_start: DateType
    days: list[DaySchedule]


class SlotCheck(BaseModel):
    valid: bool
    reason: SlotReason | None = None
    opens_at: str | None = None
    latest_start: str | None = None
    conflict_start: str | None = None
    conflict_end: str | None = None


class SalonRecord(BaseModel):
    salon_id: str
    name: str
    opening_hours: OpeningHours
    created_at: datetime


class ServiceRecord(BaseModel):
    service_id: str
    salon_id: str
    name: str
    request: ServiceRequest


class SlotCheckRequest(BaseModel):
    date: DateType
    time: str
    service_id: str | None = None
    duration_minutes: int | None = None
    employee_id: str | None = None
