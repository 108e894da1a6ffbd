from __future__ import annotations

from salonbook.repository import ExcelRepository
from salonbook.services import AvailabilityService

repo = ExcelRepository()
service = AvailabilityService(repo=repo)
