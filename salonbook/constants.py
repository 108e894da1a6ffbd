from __future__ import annotations

# Sunday-indexed, matching the keys of a salon's opening_hours blob.
WEEKDAY_NAMES = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]

DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "18:00"
DAY_START = "00:00"
DAY_END = "24:00"
MINUTES_PER_DAY = 24 * 60

SLOT_ROUNDING_MINUTES = 15
WEEK_LENGTH_DAYS = 7
WEEK_STARTS_ON = 0  # Monday, Python weekday numbering

EMPLOYEE_ANY = "any"

BLOCK_AVAILABLE = "available"
BLOCK_BOOKED = "booked"
BLOCK_ABSENT = "absent"
BLOCK_CLOSED = "closed"

STATUS_PENDING = "pending"
STATUS_CANCELLED = "cancelled"

LEAVE_APPROVED = "approved"

REASON_SALON_CLOSED = "salon_closed"
REASON_EMPLOYEE_ABSENT = "employee_absent"
REASON_TIME_TOO_EARLY = "time_too_early"
REASON_TIME_TOO_LATE = "time_too_late"
REASON_TIME_CONFLICT = "time_conflict"

SALONS_HEADERS = ["salon_id", "name", "opening_hours", "created_at"]
SERVICES_HEADERS = [
    "service_id",
    "salon_id",
    "name",
    "duration_minutes",
    "buffer_before",
    "buffer_after",
]
CLOSURES_HEADERS = ["closure_id", "salon_id", "start_date", "end_date", "reason"]
LEAVE_HEADERS = [
    "leave_id",
    "salon_id",
    "employee_id",
    "start_date",
    "end_date",
    "status",
]
APPOINTMENTS_HEADERS = [
    "appointment_id",
    "salon_id",
    "employee_id",
    "start_time",
    "end_time",
    "status",
    "created_at",
]
