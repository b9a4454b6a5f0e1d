"""Service settings, read once from the environment at import.

Besides the usual runtime knobs this carries the reaggregation cadence:
how many flagged records one pass handles, how often the worker schedules
a pass, and how long it blocks on an empty queue.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_APP_ENVS = ("dev", "test", "prod")
_LOG_LEVELS = ("debug", "info", "warning", "error")
_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    reaggregation_batch_size: int = 500
    reaggregation_interval: int = 60  # seconds; 0 turns the schedule off
    worker_poll_timeout: int = 1

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def sync_database_url(self) -> str | None:
        """DATABASE_URL with the asyncpg driver swapped for psycopg2."""
        if self.database_url is None:
            return None
        return self.database_url.replace("postgresql+asyncpg://", "postgresql://", 1)


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    value = _env(name, default).lower()
    if value not in allowed:
        raise ValueError(f"{name} must be {'|'.join(allowed)} (got {value!r})")
    return value


def _int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _env(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def load_settings() -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=_choice("APP_ENV", "dev", _APP_ENVS),
        log_level=_choice("LOG_LEVEL", "info", _LOG_LEVELS),
        log_json=_env("LOG_JSON", "false").lower() in _TRUTHY,
        port=_int("PORT", 8000, minimum=1),
        database_url=_env("DATABASE_URL") or None,
        redis_url=_env("REDIS_URL") or None,
        reaggregation_batch_size=_int("REAGGREGATION_BATCH_SIZE", 500, minimum=1),
        reaggregation_interval=_int("REAGGREGATION_INTERVAL", 60),
        worker_poll_timeout=_int("WORKER_POLL_TIMEOUT", 1, minimum=1),
    )


SETTINGS = load_settings()
