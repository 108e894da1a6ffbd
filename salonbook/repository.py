from __future__ import annotations

import json
import logging
import shutil
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Callable

from filelock import FileLock
from openpyxl import Workbook, load_workbook

from salonbook.config import settings
from salonbook.constants import (
    APPOINTMENTS_HEADERS,
    CLOSURES_HEADERS,
    LEAVE_APPROVED,
    LEAVE_HEADERS,
    SALONS_HEADERS,
    SERVICES_HEADERS,
    STATUS_CANCELLED,
    STATUS_PENDING,
)
from salonbook.domain import normalize_minutes
from salonbook.models import (
    Booking,
    Closure,
    LeaveInterval,
    OpeningHours,
    SalonRecord,
    ServiceRecord,
    ServiceRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class Tables:
    salons: list[dict[str, Any]]
    services: list[dict[str, Any]]
    closures: list[dict[str, Any]]
    leave_requests: list[dict[str, Any]]
    appointments: list[dict[str, Any]]


class ExcelRepository:
    def __init__(self) -> None:
        self.data_file = settings.data_file
        self.backup_dir = settings.backup_dir
        self.lock = FileLock(str(settings.lock_file))

    def init_storage(self) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        Path(self.lock.lock_file).parent.mkdir(parents=True, exist_ok=True)
        if self.data_file.exists():
            return

        wb = Workbook()
        wb.remove(wb.active)
        for sheet_name, headers in self._sheet_headers().items():
            ws = wb.create_sheet(sheet_name)
            ws.append(headers)
        wb.save(self.data_file)
        logger.info("Initialised salon workbook at %s", self.data_file)

    def upsert_salon(
        self,
        name: str,
        opening_hours: dict[str, Any],
        salon_id: str | None = None,
    ) -> SalonRecord:
        now = datetime.now(timezone.utc).isoformat()
        payload = json.dumps(opening_hours)

        def mutate(tables: Tables) -> dict[str, Any]:
            if salon_id:
                for row in tables.salons:
                    if row.get("salon_id") == salon_id:
                        row["name"] = name
                        row["opening_hours"] = payload
                        return row
            row = {
                "salon_id": salon_id or uuid.uuid4().hex,
                "name": name,
                "opening_hours": payload,
                "created_at": now,
            }
            tables.salons.append(row)
            return row

        return self._salon_from_row(self._write_tables(mutate))

    def get_salon(self, salon_id: str) -> SalonRecord | None:
        for row in self._read_tables().salons:
            if row.get("salon_id") == salon_id:
                return self._salon_from_row(row)
        return None

    def upsert_service(
        self,
        salon_id: str,
        name: str,
        duration_minutes: int,
        buffer_before: int = 0,
        buffer_after: int = 0,
        service_id: str | None = None,
    ) -> ServiceRecord:
        def mutate(tables: Tables) -> dict[str, Any]:
            values = {
                "salon_id": salon_id,
                "name": name,
                "duration_minutes": duration_minutes,
                "buffer_before": buffer_before,
                "buffer_after": buffer_after,
            }
            if service_id:
                for row in tables.services:
                    if row.get("service_id") == service_id:
                        row.update(values)
                        return row
            row = {"service_id": service_id or uuid.uuid4().hex, **values}
            tables.services.append(row)
            return row

        return self._service_from_row(self._write_tables(mutate))

    def get_service(self, service_id: str) -> ServiceRecord | None:
        for row in self._read_tables().services:
            if row.get("service_id") == service_id:
                return self._service_from_row(row)
        return None

    def add_closure(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> Closure:
        if end_date < start_date:
            raise ValueError("Closure ends before it starts")

        def mutate(tables: Tables) -> dict[str, Any]:
            row = {
                "closure_id": uuid.uuid4().hex,
                "salon_id": salon_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "reason": reason,
            }
            tables.closures.append(row)
            return row

        return self._closure_from_row(self._write_tables(mutate))

    def list_closures(self, salon_id: str, start_date: date, end_date: date) -> list[Closure]:
        closures = [
            self._closure_from_row(row)
            for row in self._read_tables().closures
            if row.get("closure_id") and row.get("salon_id") == salon_id
        ]
        return [c for c in closures if c.start_date <= end_date and c.end_date >= start_date]

    def add_leave(
        self,
        salon_id: str,
        employee_id: str,
        start_date: date,
        end_date: date,
        status: str = LEAVE_APPROVED,
    ) -> LeaveInterval:
        if end_date < start_date:
            raise ValueError("Leave ends before it starts")

        def mutate(tables: Tables) -> dict[str, Any]:
            row = {
                "leave_id": uuid.uuid4().hex,
                "salon_id": salon_id,
                "employee_id": employee_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "status": status,
            }
            tables.leave_requests.append(row)
            return row

        return self._leave_from_row(self._write_tables(mutate))

    def list_leave(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
    ) -> list[LeaveInterval]:
        rows: list[LeaveInterval] = []
        for row in self._read_tables().leave_requests:
            if not row.get("leave_id") or row.get("salon_id") != salon_id:
                continue
            if row.get("status") != LEAVE_APPROVED:
                continue
            if employee_id and row.get("employee_id") != employee_id:
                continue
            item = self._leave_from_row(row)
            if item.start_date <= end_date and item.end_date >= start_date:
                rows.append(item)
        return rows

    def add_appointment(
        self,
        salon_id: str,
        start_time: datetime,
        end_time: datetime,
        employee_id: str | None = None,
        status: str = STATUS_PENDING,
    ) -> Booking:
        if end_time <= start_time:
            raise ValueError("Appointment ends before it starts")
        now = datetime.now(timezone.utc).isoformat()

        def mutate(tables: Tables) -> dict[str, Any]:
            row = {
                "appointment_id": uuid.uuid4().hex,
                "salon_id": salon_id,
                "employee_id": employee_id,
                "start_time": start_time.isoformat(),
                "end_time": end_time.isoformat(),
                "status": status,
                "created_at": now,
            }
            tables.appointments.append(row)
            return row

        return self._booking_from_row(self._write_tables(mutate))

    def list_appointments(
        self,
        salon_id: str,
        start_date: date,
        end_date: date,
        employee_id: str | None = None,
    ) -> list[Booking]:
        """Non-cancelled appointments starting within [start_date, end_date]."""
        window_start = datetime.combine(start_date, time.min)
        window_end = datetime.combine(end_date + timedelta(days=1), time.min)
        rows: list[Booking] = []
        for row in self._read_tables().appointments:
            if not row.get("appointment_id") or row.get("salon_id") != salon_id:
                continue
            if row.get("status") == STATUS_CANCELLED:
                continue
            if employee_id and row.get("employee_id") != employee_id:
                continue
            booking = self._booking_from_row(row)
            start = booking.start_time.replace(tzinfo=None)
            if window_start <= start < window_end:
                rows.append(booking)
        return rows

    def _sheet_headers(self) -> dict[str, list[str]]:
        return {
            "salons": SALONS_HEADERS,
            "services": SERVICES_HEADERS,
            "closures": CLOSURES_HEADERS,
            "leave_requests": LEAVE_HEADERS,
            "appointments": APPOINTMENTS_HEADERS,
        }

    def _read_tables(self) -> Tables:
        self.init_storage()
        wb = load_workbook(self.data_file)
        try:
            return self._tables_from(wb)
        finally:
            wb.close()

    def _write_tables(self, mutator: Callable[[Tables], Any]) -> Any:
        self.init_storage()
        with self.lock:
            wb = load_workbook(self.data_file)
            try:
                tables = self._tables_from(wb)
                result = mutator(tables)
                for name, headers in self._sheet_headers().items():
                    self._write_sheet(wb, name, headers, getattr(tables, name))
                self._persist_workbook(wb)
                return result
            finally:
                wb.close()

    def _tables_from(self, workbook: Workbook) -> Tables:
        return Tables(
            **{
                name: self._read_sheet(workbook, name, headers)
                for name, headers in self._sheet_headers().items()
            }
        )

    def _persist_workbook(self, workbook: Workbook) -> None:
        with NamedTemporaryFile(suffix=".xlsx", delete=False) as tmp:
            temp_path = Path(tmp.name)
        try:
            workbook.save(temp_path)
            if self.data_file.exists():
                stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
                backup_path = self.backup_dir / f"salon-{stamp}.xlsx"
                shutil.copy2(self.data_file, backup_path)
            shutil.move(str(temp_path), self.data_file)
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _read_sheet(self, workbook: Workbook, name: str, headers: list[str]) -> list[dict[str, Any]]:
        if name not in workbook.sheetnames:
            return []
        ws = workbook[name]
        rows: list[dict[str, Any]] = []
        for row in ws.iter_rows(min_row=2, values_only=True):
            if all(item is None for item in row):
                continue
            rows.append(
                {header: row[index] if index < len(row) else None for index, header in enumerate(headers)}
            )
        return rows

    def _write_sheet(
        self,
        workbook: Workbook,
        name: str,
        headers: list[str],
        rows: list[dict[str, Any]],
    ) -> None:
        if name not in workbook.sheetnames:
            workbook.create_sheet(name)
        ws = workbook[name]
        ws.delete_rows(1, ws.max_row)
        ws.append(headers)
        for row in rows:
            ws.append([row.get(header) for header in headers])

    def _salon_from_row(self, row: dict[str, Any]) -> SalonRecord:
        raw_hours = row.get("opening_hours")
        try:
            hours = json.loads(raw_hours) if raw_hours else {}
        except (TypeError, json.JSONDecodeError):
            logger.warning("Salon %s has unreadable opening hours", row.get("salon_id"))
            hours = {}
        return SalonRecord(
            salon_id=row["salon_id"],
            name=row.get("name") or "",
            opening_hours=OpeningHours.from_json(hours),
            created_at=self._parse_datetime(row["created_at"]),
        )

    def _service_from_row(self, row: dict[str, Any]) -> ServiceRecord:
        return ServiceRecord(
            service_id=row["service_id"],
            salon_id=row["salon_id"],
            name=row.get("name") or "",
            request=ServiceRequest(
                duration_minutes=normalize_minutes(row.get("duration_minutes")),
                buffer_before_minutes=normalize_minutes(row.get("buffer_before")),
                buffer_after_minutes=normalize_minutes(row.get("buffer_after")),
            ),
        )

    def _closure_from_row(self, row: dict[str, Any]) -> Closure:
        return Closure(
            start_date=self._parse_date(row["start_date"]),
            end_date=self._parse_date(row["end_date"]),
            reason=row.get("reason") or None,
        )

    def _leave_from_row(self, row: dict[str, Any]) -> LeaveInterval:
        return LeaveInterval(
            start_date=self._parse_date(row["start_date"]),
            end_date=self._parse_date(row["end_date"]),
            employee_id=row["employee_id"],
            status=row.get("status") or LEAVE_APPROVED,
        )

    def _booking_from_row(self, row: dict[str, Any]) -> Booking:
        return Booking(
            start_time=self._parse_datetime(row["start_time"]),
            end_time=self._parse_datetime(row["end_time"]),
            employee_id=row.get("employee_id") or None,
            status=row.get("status") or STATUS_PENDING,
        )

    def _parse_date(self, raw: Any) -> date:
        if isinstance(raw, date) and not isinstance(raw, datetime):
            return raw
        if isinstance(raw, datetime):
            return raw.date()
        return date.fromisoformat(str(raw))

    def _parse_datetime(self, raw: Any) -> datetime:
        if isinstance(raw, datetime):
            return raw
        return datetime.fromisoformat(str(raw))
