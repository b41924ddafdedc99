from __future__ import annotations

import logging
import os

DEFAULT_AUTOSAVE_DELAY_MS = 3000
DEFAULT_EXCLUDED_ROLE = "store manager"
DEFAULT_DATABASE_URL = "sqlite:///./rosterdesk.db"


def get_database_url() -> str:
    raw_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+psycopg://", 1)
    if raw_url.startswith("postgresql://") and "+" not in raw_url.split("://", 1)[0]:
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


def get_store_id() -> str:
    return os.getenv("ROSTER_STORE_ID", "default")


def get_autosave_delay_seconds() -> float:
    raw = os.getenv("ROSTER_AUTOSAVE_DELAY_MS", "")
    try:
        delay_ms = int(raw) if raw else DEFAULT_AUTOSAVE_DELAY_MS
    except ValueError:
        raise ValueError(f"ROSTER_AUTOSAVE_DELAY_MS must be an integer, got {raw!r}") from None
    if delay_ms < 0:
        raise ValueError("ROSTER_AUTOSAVE_DELAY_MS cannot be negative")
    return delay_ms / 1000.0


def get_excluded_role() -> str:
    return os.getenv("ROSTER_EXCLUDED_ROLE", DEFAULT_EXCLUDED_ROLE).strip().lower()


def get_api_url() -> str:
    return os.getenv("ROSTER_API_URL", "http://localhost:8000").rstrip("/")


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
