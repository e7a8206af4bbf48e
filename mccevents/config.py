"""
Runtime configuration.

Values come from environment variables (or a local .env file). Nothing in the
pure modules reads these settings directly: entry points (CLI, HTTP app) load
them once and pass the relevant values down.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from functools import lru_cache

from dateutil import tz as dateutil_tz
from pydantic_settings import BaseSettings, SettingsConfigDict

from mccevents.layout import GridWindow


class Settings(BaseSettings):
    # Backing store (Supabase / PostgREST). Empty URL -> local in-memory store.
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    STORE_TIMEOUT_SECONDS: float = 30.0

    # Seed file for the in-memory store
    EVENTS_FILE: str = ""

    # Presentation
    TIMEZONE: str = ""  # empty = system local time
    WEEK_START: int = 1  # 0 = Sunday, 1 = Monday
    DAY_HOURS_START: int = 8
    DAY_HOURS_END: int = 20
    MIN_EVENT_HEIGHT_PCT: float = 8.0
    KIOSK_REFRESH_SECONDS: float = 60.0

    # Calendar files
    ICS_PRODID: str = "-//MCC Events//EN"
    ICS_UID_DOMAIN: str = "mcc-events"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def local_tz(self) -> tzinfo:
        """
        Timezone used for "local" day and week boundaries.
        """
        if self.TIMEZONE.strip():
            zone = dateutil_tz.gettz(self.TIMEZONE.strip())
            if zone is None:
                raise ValueError(f"Unknown timezone: {self.TIMEZONE!r}")
            return zone
        return dateutil_tz.tzlocal()

    def grid_window(self) -> GridWindow:
        return GridWindow(
            start_hour=self.DAY_HOURS_START,
            end_hour=self.DAY_HOURS_END,
            min_height_pct=self.MIN_EVENT_HEIGHT_PCT,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once for the CLI and the HTTP server.
    """
    name = (level or get_settings().LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
