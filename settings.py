from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_STORE_BACKEND_ENV = "TELEMETRY_STORE_BACKEND"
_DATA_PATH_ENV = "TELEMETRY_DATA_PATH"
_DB_PATH_ENV = "TELEMETRY_DB_PATH"
_MAX_READINGS_ENV = "TELEMETRY_MAX_READINGS"
_ADMIN_KEY_ENV = "ADMIN_KEY"
_REPLAY_ENABLED_ENV = "REPLAY_ENABLED"
_REPLAY_INTERVAL_ENV = "REPLAY_INTERVAL_MS"
_QUEUE_SIZE_ENV = "OBSERVER_QUEUE_SIZE"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

STORE_BACKENDS = ("file", "document")


@dataclass(frozen=True)
class Settings:
    store_backend: str
    data_path: Optional[str]
    db_path: str
    max_readings: int
    admin_key: Optional[str]
    replay_enabled: bool
    replay_interval_ms: int
    observer_queue_size: int
    cors_allow_origins: Tuple[str, ...]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_store_backend(default: str) -> str:
    candidate = _read_str_env(_STORE_BACKEND_ENV, default).lower()
    return candidate if candidate in STORE_BACKENDS else default


def _read_origins(default: str) -> Tuple[str, ...]:
    raw = _read_str_env(_CORS_ORIGINS_ENV, default)
    origins = tuple(part.strip() for part in raw.split(",") if part.strip())
    return origins or (default,)


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_backend=_read_store_backend("file"),
        data_path=_read_optional_env(_DATA_PATH_ENV, "./tmp/data.json"),
        db_path=_read_str_env(_DB_PATH_ENV, "./tmp/telemetry.db"),
        max_readings=_read_positive_int(_MAX_READINGS_ENV, 1000),
        admin_key=_read_optional_env(_ADMIN_KEY_ENV, None),
        replay_enabled=_read_bool(_REPLAY_ENABLED_ENV, False),
        replay_interval_ms=_read_positive_int(_REPLAY_INTERVAL_ENV, 3000),
        observer_queue_size=_read_positive_int(_QUEUE_SIZE_ENV, 100),
        cors_allow_origins=_read_origins("*"),
        log_level=_read_log_level("INFO"),
    )
