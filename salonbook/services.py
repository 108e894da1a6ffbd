from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from fastapi import HTTPException, status

from salonbook.availability import compute_day_schedule, compute_week_schedule, is_slot_available
from salonbook.config import settings
from salonbook.domain import (
    EmployeeFilter,
    clamp_week_start,
    local_now,
    normalize_minutes,
    resolve_employee_filter,
    to_local,
)
from salonbook.models import Booking, DaySchedule, SalonRecord, SlotCheck, WeekSchedule
from salonbook.repository import ExcelRepository

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityService:
    repo: ExcelRepository
    timezone: str = field(default_factory=lambda: settings.timezone)

    def day_schedule(
        self,
        salon_id: str,
        value_date: date,
        service_id: str | None = None,
        duration_minutes: int | None = None,
        employee_id: str | None = None,
        now: datetime | None = None,
    ) -> DaySchedule:
        salon = self._get_salon_or_404(salon_id)
        duration = self._resolve_duration(service_id, duration_minutes)
        employee = resolve_employee_filter(employee_id)
        current = now or local_now(self.timezone)
        return compute_day_schedule(
            value_date,
            salon.opening_hours,
            self.repo.list_closures(salon_id, value_date, value_date),
            self.repo.list_leave(salon_id, value_date, value_date, employee.employee_id),
            self._bookings(salon_id, value_date, value_date, employee),
            duration,
            employee,
            current,
        )

    def week_schedule(
        self,
        salon_id: str,
        week_start: date | None = None,
        service_id: str | None = None,
        duration_minutes: int | None = None,
        employee_id: str | None = None,
        now: datetime | None = None,
    ) -> WeekSchedule:
        salon = self._get_salon_or_404(salon_id)
        duration = self._resolve_duration(service_id, duration_minutes)
        employee = resolve_employee_filter(employee_id)
        current = now or local_now(self.timezone)
        start = clamp_week_start(week_start, current.date())
        end = start + timedelta(days=6)
        logger.debug("Computing week %s for salon %s", start.isoformat(), salon_id)
        return compute_week_schedule(
            start,
            salon.opening_hours,
            self.repo.list_closures(salon_id, start, end),
            self.repo.list_leave(salon_id, start, end, employee.employee_id),
            self._bookings(salon_id, start, end, employee),
            duration,
            employee,
            current,
        )

    def check_slot(
        self,
        salon_id: str,
        value_date: date,
        time_text: str,
        service_id: str | None = None,
        duration_minutes: int | None = None,
        employee_id: str | None = None,
        now: datetime | None = None,
    ) -> SlotCheck:
        salon = self._get_salon_or_404(salon_id)
        duration = self._resolve_duration(service_id, duration_minutes)
        employee = resolve_employee_filter(employee_id)
        current = now or local_now(self.timezone)
        try:
            result = is_slot_available(
                value_date,
                time_text,
                duration,
                salon.opening_hours,
                self._bookings(salon_id, value_date, value_date, employee),
                closures=self.repo.list_closures(salon_id, value_date, value_date),
                leave=self.repo.list_leave(salon_id, value_date, value_date, employee.employee_id),
                employee_filter=employee,
                now=current,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if not result.valid:
            logger.info(
                "Rejected slot %s %s for salon %s: %s",
                value_date.isoformat(),
                time_text,
                salon_id,
                result.reason,
            )
        return result

    def _get_salon_or_404(self, salon_id: str) -> SalonRecord:
        salon = self.repo.get_salon(salon_id)
        if not salon:
            raise HTTPException(status_code=404, detail="Salon not found")
        return salon

    def _resolve_duration(self, service_id: str | None, duration_minutes: int | None) -> int:
        if service_id:
            service = self.repo.get_service(service_id)
            if not service:
                raise HTTPException(status_code=404, detail="Service not found")
            return service.request.total_minutes
        return normalize_minutes(duration_minutes)

    def _bookings(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        employee: EmployeeFilter,
    ) -> list[Booking]:
        # One day of slack on each side keeps overnight appointments in view.
        rows = self.repo.list_appointments(
            salon_id,
            start_date - timedelta(days=1),
            end_date + timedelta(days=1),
            employee.employee_id,
        )
        return [
            booking.model_copy(
                update={
                    "start_time": to_local(booking.start_time, self.timezone),
                    "end_time": to_local(booking.end_time, self.timezone),
                }
            )
            for booking in rows
        ]
