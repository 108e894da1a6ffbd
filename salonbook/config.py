from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    data_file: Path = Path(os.getenv("SALON_APP_DATA_FILE", "data/salon.xlsx"))
    backup_dir: Path = Path(os.getenv("SALON_APP_BACKUP_DIR", "data/backups"))
    lock_file: Path = Path(os.getenv("SALON_APP_LOCK_FILE", "data/salon.lock"))
    timezone: str = os.getenv("SALON_APP_TIMEZONE", "Europe/Berlin")
    log_level: str = os.getenv("SALON_APP_LOG_LEVEL", "INFO")


settings = Settings()
