from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple


_MAX_READINGS_ENV = "TELEMETRY_MAX_READINGS"
_SNAPSHOT_SIZE_ENV = "TELEMETRY_SNAPSHOT_SIZE"
_OBSERVER_QUEUE_ENV = "TELEMETRY_OBSERVER_QUEUE_SIZE"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"


@dataclass(frozen=True)
class Settings:
    max_readings: int
    snapshot_size: int
    observer_queue_size: int
    cors_origins: Tuple[str, ...]
    log_level: str
    host: str
    port: int


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


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
        max_readings=_read_positive_int(_MAX_READINGS_ENV, 5000),
        snapshot_size=_read_positive_int(_SNAPSHOT_SIZE_ENV, 200),
        observer_queue_size=_read_positive_int(_OBSERVER_QUEUE_ENV, 256),
        cors_origins=_read_origins(("*",)),
        log_level=_read_log_level("INFO"),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 4000),
    )
