"""
Tally backend configuration.
Single source of truth for environment and app settings.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def get_settings():
    """Return app settings (use as FastAPI Depends or call directly)."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    APP_TITLE: str = "Tally API"
    APP_VERSION: str = "1.0.0"
    ALLOWED_ORIGINS: list[str]
    LOG_LEVEL: str = "INFO"

    # Storage: root of the durable partitions; fsync off only for throwaway data
    TALLY_DATA_DIR: Path
    TALLY_FSYNC: bool = True

    def __init__(self):
        origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000")
        self.ALLOWED_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
        self.LOG_LEVEL = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
        data_dir = os.environ.get("TALLY_DATA_DIR", "data")
        self.TALLY_DATA_DIR = Path(data_dir)
        fsync = (os.environ.get("TALLY_FSYNC") or "1").strip().lower()
        self.TALLY_FSYNC = fsync not in ("0", "false", "no", "off")
