# src/sampleapp/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- registers services (singletons, scoped notifier) in the container,
- wires queue, worker, scheduler and startup tasks into a BackgroundHost.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Notifier, TodoRepo
from ..core.state import AppState
from ..hosting import BackgroundHost
from ..notify.webhook import LogNotifier, WebhookNotifier
from ..services.provider import ServiceCollection, ServiceProvider, ServiceScope
from ..tasks.job_scheduler import JobSchedulerService
from ..tasks.task_api import heartbeat_job
from ..tasks.task_queue import BackgroundTaskQueue, queue_from_settings
from ..tasks.task_service import BackgroundTaskService
from ..todo.repository import InMemoryTodoRepository
from ..todo.service import TodoService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def register_services(settings, queue: BackgroundTaskQueue) -> ServiceProvider:
    services = ServiceCollection()

    services.add_singleton(BackgroundTaskQueue, instance=queue)
    services.add_singleton(TodoRepo, lambda _scope: InMemoryTodoRepository())
    services.add_singleton(
        TodoService,
        lambda scope: TodoService(scope.resolve(TodoRepo), scope.resolve(BackgroundTaskQueue)),
    )

    webhook_url = getattr(settings, "notify_webhook_url", None)
    if webhook_url:
        timeout_s = float(getattr(settings, "notify_timeout_seconds", 10.0))
        services.add_scoped(Notifier, lambda _scope: WebhookNotifier(webhook_url, timeout_seconds=timeout_s))
    else:
        services.add_scoped(Notifier, lambda _scope: LogNotifier())

    return services.build_provider()


async def check_services(scope: ServiceScope) -> None:
    """Startup task: fail fast if the scoped graph cannot be built."""
    notifier = scope.resolve(Notifier)
    logger.info("Notifier resolved: %s", type(notifier).__name__)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    queue = queue_from_settings(settings)
    provider = register_services(settings, queue)

    worker = BackgroundTaskService(
        queue,
        provider,
        shutdown_timeout_seconds=settings.shutdown_timeout_seconds,
        item_timeout_seconds=settings.item_timeout_seconds,
    )

    scheduler = JobSchedulerService(queue)
    heartbeat_cron = getattr(settings, "heartbeat_cron", None)
    if heartbeat_cron or settings.heartbeat_interval_seconds:
        scheduler.add_job(
            heartbeat_job(
                queue,
                interval_seconds=settings.heartbeat_interval_seconds,
                cron=heartbeat_cron,
            )
        )

    host = BackgroundHost(
        provider,
        queue,
        worker,
        scheduler,
        startup_tasks=[check_services],
        shutdown_timeout_seconds=settings.shutdown_timeout_seconds,
    )

    return AppState(
        settings=settings,
        services=provider,
        host=host,
        todos=provider.resolve(TodoService),
    )
