# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from .fakes import FakeScopeFactory


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="sampleapp-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path / "data",
        task_queue_capacity=8,
        task_queue_overflow="wait",
        shutdown_timeout_seconds=2.0,
        item_timeout_seconds=None,
        heartbeat_interval_seconds=None,
        heartbeat_cron=None,
        enqueue_timeout_seconds=1.0,
        notify_webhook_url=None,
        notify_timeout_seconds=1.0,
    )


@pytest.fixture()
def scopes() -> FakeScopeFactory:
    return FakeScopeFactory()
