# flipwatch/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ..config import settings
from ..logging_config import configure_logging

celery_app = Celery(
    "flipwatch",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["flipwatch.workers.sync_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,  # a market sync runs for minutes; don't let one worker hoard them
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone=settings.sync_timezone,
    enable_utc=True,
)

celery_app.conf.task_routes = {
    "flipwatch.workers.sync_tasks.*": {"queue": "sync"},
}

# Nightly, all markets one after another (same slot the cron job used).
celery_app.conf.beat_schedule = {
    "sync-all-markets-nightly": {
        "task": "flipwatch.workers.sync_tasks.sync_all_markets_task",
        "schedule": crontab(hour=settings.sync_cron_hour, minute=settings.sync_cron_minute),
    },
}


@setup_logging.connect
def _configure_worker_logging(**_kwargs) -> None:
    configure_logging()
