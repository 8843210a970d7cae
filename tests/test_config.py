# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from sampleapp.config import Settings

_VARS = (
    "APP_NAME",
    "CONSOLE_ENABLED",
    "DATA_DIR",
    "TASK_QUEUE_CAPACITY",
    "TASK_QUEUE_OVERFLOW",
    "SHUTDOWN_TIMEOUT_SECONDS",
    "ITEM_TIMEOUT_SECONDS",
    "HEARTBEAT_INTERVAL_SECONDS",
    "HEARTBEAT_CRON",
    "ENQUEUE_TIMEOUT_SECONDS",
    "NOTIFY_WEBHOOK_URL",
    "NOTIFY_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(f"SAMPLEAPP_{name}", raising=False)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.app_name == "sampleapp"
    assert s.console_enabled is True
    assert s.data_dir == Path(".local/sampleapp")
    assert s.task_queue_capacity == 100
    assert s.task_queue_overflow == "wait"
    assert s.shutdown_timeout_seconds == 30.0
    assert s.item_timeout_seconds is None
    assert s.heartbeat_interval_seconds is None
    assert s.heartbeat_cron is None
    assert s.enqueue_timeout_seconds == 10.0
    assert s.notify_webhook_url is None


def test_values_are_read_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SAMPLEAPP_CONSOLE_ENABLED", "off")
    monkeypatch.setenv("SAMPLEAPP_TASK_QUEUE_CAPACITY", "5")
    monkeypatch.setenv("SAMPLEAPP_TASK_QUEUE_OVERFLOW", "REJECT")
    monkeypatch.setenv("SAMPLEAPP_ITEM_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SAMPLEAPP_HEARTBEAT_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("SAMPLEAPP_HEARTBEAT_CRON", "*/15 * * * *")
    monkeypatch.setenv("SAMPLEAPP_ENQUEUE_TIMEOUT_SECONDS", "2")
    monkeypatch.setenv("SAMPLEAPP_NOTIFY_WEBHOOK_URL", " https://hooks.example.test/x ")

    s = Settings.from_env()

    assert s.console_enabled is False
    assert s.task_queue_capacity == 5
    assert s.task_queue_overflow == "reject"
    assert s.item_timeout_seconds == 2.5
    assert s.heartbeat_interval_seconds == 60.0
    assert s.heartbeat_cron == "*/15 * * * *"
    assert s.enqueue_timeout_seconds == 2.0
    assert s.notify_webhook_url == "https://hooks.example.test/x"


def test_bad_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SAMPLEAPP_TASK_QUEUE_CAPACITY", "0")
    monkeypatch.setenv("SAMPLEAPP_TASK_QUEUE_OVERFLOW", "drop-oldest")
    monkeypatch.setenv("SAMPLEAPP_SHUTDOWN_TIMEOUT_SECONDS", "-3")
    monkeypatch.setenv("SAMPLEAPP_NOTIFY_TIMEOUT_SECONDS", "abc")
    monkeypatch.setenv("SAMPLEAPP_HEARTBEAT_CRON", "not a cron")

    s = Settings.from_env()

    assert s.task_queue_capacity == 100
    assert s.task_queue_overflow == "wait"
    assert s.shutdown_timeout_seconds == 0.0
    assert s.notify_timeout_seconds == 10.0
    assert s.heartbeat_cron is None
