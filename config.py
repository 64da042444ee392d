import os
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo


STORE_BACKENDS = ("sql", "memory")


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        store_backend: str,
        week_start: int,
        log_level: str,
    ) -> None:
        if store_backend not in STORE_BACKENDS:
            raise ValueError(f"Unknown store backend: {store_backend}")
        if not 0 <= week_start <= 6:
            raise ValueError("Week start must be between 0 (Monday) and 6 (Sunday)")
        self.database_url = database_url
        self.timezone = timezone
        self.store_backend = store_backend
        self.week_start = week_start
        self.log_level = log_level

    def today(self) -> date:
        return datetime.now(ZoneInfo(self.timezone)).date()


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    database_url = os.getenv("LEDGER_DATABASE_URL")
    if not database_url:
        default_db = _ensure_data_dir() / "ledger.db"
        database_url = f"sqlite:///{default_db}"
    timezone = os.getenv("LEDGER_TIMEZONE", "Europe/Berlin")
    store_backend = os.getenv("LEDGER_STORE", "sql").lower()
    week_start = int(os.getenv("LEDGER_WEEK_START", "0"))
    log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        store_backend=store_backend,
        week_start=week_start,
        log_level=log_level,
    )
