"""
Celery application configuration for CourseBuddy Scheduler.

Runs catalog refreshes outside the request path, including a daily refresh
of the default term.
"""
from celery import Celery
from celery.schedules import crontab

from coursebuddy.config import settings

celery_app = Celery(
    "coursebuddy",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "coursebuddy.tasks.catalog_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="America/Vancouver",
    enable_utc=True,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    result_expires=3600,

    beat_schedule={
        # Keeps the 24 hour catalog cache warm
        "refresh-default-catalog": {
            "task": "coursebuddy.tasks.catalog_tasks.refresh_catalog_task",
            "schedule": crontab(hour=4, minute=0),
        },
    },
)


def get_celery_app() -> Celery:
    """Get the Celery application instance."""
    return celery_app
