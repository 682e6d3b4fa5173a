"""Environment-driven settings for the rhyme suggestion engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .core.capper import DEFAULT_CAP
from .core.database import CURRENT_VERSION, DEFAULT_FETCH_TIMEOUT

DEFAULT_DB_ORIGIN = "http://localhost:3000"
DEFAULT_CACHE_SIZE = 2000


@dataclass(frozen=True)
class Settings:
    db_origin: str
    db_version: int
    fetch_timeout: float
    cache_size: int
    default_cap: int
    log_level: Optional[str]
    share_interface: bool


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Read settings from ``RHYME_LINES_*`` environment variables."""

    return Settings(
        db_origin=os.environ.get("RHYME_LINES_DB_ORIGIN", DEFAULT_DB_ORIGIN).strip() or DEFAULT_DB_ORIGIN,
        db_version=_env_int("RHYME_LINES_DB_VERSION", CURRENT_VERSION, minimum=1),
        fetch_timeout=_env_float("RHYME_LINES_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
        cache_size=_env_int("RHYME_LINES_CACHE_SIZE", DEFAULT_CACHE_SIZE),
        default_cap=_env_int("RHYME_LINES_DEFAULT_CAP", DEFAULT_CAP),
        log_level=os.environ.get("RHYME_LINES_LOG_LEVEL") or None,
        share_interface=_env_flag("RHYME_LINES_SHARE"),
    )


__all__ = ["DEFAULT_CACHE_SIZE", "DEFAULT_DB_ORIGIN", "Settings", "get_settings"]
