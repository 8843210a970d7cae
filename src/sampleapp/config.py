# src/sampleapp/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Bad values fall back to defaults instead of crashing the host at boot.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from croniter import croniter
from dotenv import load_dotenv

ENV_PREFIX = "SAMPLEAPP"

OVERFLOW_POLICIES = ("wait", "reject")

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path

    # ---- Background task queue ----
    task_queue_capacity: int
    task_queue_overflow: str
    shutdown_timeout_seconds: float
    item_timeout_seconds: float | None
    enqueue_timeout_seconds: float

    # ---- Scheduler ----
    heartbeat_interval_seconds: float | None
    heartbeat_cron: str | None

    # ---- Notifications ----
    notify_webhook_url: str | None
    notify_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "sampleapp").strip() or "sampleapp"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/sampleapp"))

        # The queue is always bounded; a non-positive capacity means "use the default".
        capacity = _env_int(_k("TASK_QUEUE_CAPACITY"), 100)
        if capacity <= 0:
            capacity = 100

        overflow = _env(_k("TASK_QUEUE_OVERFLOW"), "wait").strip().lower()
        if overflow not in OVERFLOW_POLICIES:
            overflow = "wait"

        shutdown_timeout = max(0.0, _env_float(_k("SHUTDOWN_TIMEOUT_SECONDS"), 30.0))

        # 0 disables the per-item timeout / the heartbeat job.
        item_timeout = _env_float(_k("ITEM_TIMEOUT_SECONDS"), 0.0)
        heartbeat = _env_float(_k("HEARTBEAT_INTERVAL_SECONDS"), 0.0)

        # An invalid cron expression disables the cron schedule (interval still applies).
        heartbeat_cron = _env_optional(_k("HEARTBEAT_CRON"))
        if heartbeat_cron is not None and not croniter.is_valid(heartbeat_cron):
            heartbeat_cron = None

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            task_queue_capacity=capacity,
            task_queue_overflow=overflow,
            shutdown_timeout_seconds=shutdown_timeout,
            item_timeout_seconds=item_timeout if item_timeout > 0 else None,
            enqueue_timeout_seconds=max(0.1, _env_float(_k("ENQUEUE_TIMEOUT_SECONDS"), 10.0)),
            heartbeat_interval_seconds=heartbeat if heartbeat > 0 else None,
            heartbeat_cron=heartbeat_cron,
            notify_webhook_url=_env_optional(_k("NOTIFY_WEBHOOK_URL")),
            notify_timeout_seconds=max(0.1, _env_float(_k("NOTIFY_TIMEOUT_SECONDS"), 10.0)),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
