"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads environment variables (including a check that `MONGO_URI` is present).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Container for analytics configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI of the report store.
        mongo_db: Target MongoDB database name.
        reports_collection: Collection holding submitted reports.
        trend_by_year: Bucket the trend view by year+month instead of month name.
        refresh_interval_seconds: Delay between snapshot refreshes in `watch`.
        log_level: Root logging level.
    """
    mongo_uri: str
    mongo_db: str
    reports_collection: str
    trend_by_year: bool
    refresh_interval_seconds: float
    log_level: int


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _log_level(name: str) -> int:
    level = getattr(logging, name, None)
    return level if isinstance(level, int) else logging.INFO


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `MONGO_URI` is not set in the environment.
    """
    mongo_uri = os.getenv("MONGO_URI", "").strip()
    mongo_db = os.getenv("MONGO_DB", "dashmon")
    reports_collection = os.getenv("REPORTS_COLLECTION", "reports")
    refresh_interval = float(os.getenv("REFRESH_INTERVAL_SECONDS", "30"))
    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    if not mongo_uri:
        raise RuntimeError(
            "MONGO_URI is required. Set it in .env "
            "(example: 'mongodb://localhost:27017')."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        reports_collection=reports_collection,
        trend_by_year=_env_flag("TREND_BY_YEAR"),
        refresh_interval_seconds=refresh_interval,
        log_level=_log_level(level_name),
    )
