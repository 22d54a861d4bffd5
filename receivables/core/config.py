# receivables/core/config.py

from datetime import date, datetime
from typing import List
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DB_URL: str = "sqlite:///db.sqlite"  # file in project root

    # "today" for aging is resolved in this zone
    TIMEZONE: str = "Asia/Seoul"

    # Ingestion
    HEADER_SCAN_ROWS: int = 10
    CSV_CHUNK_SIZE: int = 5000

    # Dashboard
    TOP_CUSTOMERS: int = 3

    allowed_extensions: List[str] = [".csv", ".xlsx", ".xls"]
    max_file_size: int = 20 * 1024 * 1024

    class Config:
        env_file = ".env"


settings = Settings()


def local_today() -> date:
    """Today's date in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()
