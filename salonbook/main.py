from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, Query

from salonbook.config import settings
from salonbook.deps import repo, service
from salonbook.models import DaySchedule, SlotCheck, SlotCheckRequest, WeekSchedule

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Salon Availability API", version="0.1.0")


@app.on_event("startup")
def on_startup() -> None:
    repo.init_storage()
    logger.info("Salon availability API started (timezone=%s)", settings.timezone)


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/salons/{salon_id}/schedule/day", response_model=DaySchedule)
def day_schedule(
    salon_id: str,
    value_date: date = Query(alias="date"),
    service_id: str | None = Query(default=None),
    duration_minutes: int | None = Query(default=None, ge=0),
    employee_id: str | None = Query(default=None),
) -> DaySchedule:
    return service.day_schedule(
        salon_id=salon_id,
        value_date=value_date,
        service_id=service_id,
        duration_minutes=duration_minutes,
        employee_id=employee_id,
    )


@app.get("/api/salons/{salon_id}/schedule/week", response_model=WeekSchedule)
def week_schedule(
    salon_id: str,
    week_start: date | None = Query(default=None),
    service_id: str | None = Query(default=None),
    duration_minutes: int | None = Query(default=None, ge=0),
    employee_id: str | None = Query(default=None),
) -> WeekSchedule:
    return service.week_schedule(
        salon_id=salon_id,
        week_start=week_start,
        service_id=service_id,
        duration_minutes=duration_minutes,
        employee_id=employee_id,
    )


@app.post("/api/salons/{salon_id}/slot-check", response_model=SlotCheck)
def slot_check(salon_id: str, payload: SlotCheckRequest) -> SlotCheck:
    return service.check_slot(
        salon_id=salon_id,
        value_date=payload.date,
        time_text=payload.time,
        service_id=payload.service_id,
        duration_minutes=payload.duration_minutes,
        employee_id=payload.employee_id,
    )
