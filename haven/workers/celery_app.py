"""
Celery application configuration for background task processing.
"""

from celery import Celery
from celery.signals import (
    setup_logging as celery_setup_logging,
    task_failure,
    task_postrun,
    task_prerun,
    task_retry,
)
from kombu import Queue

from haven.core.config import settings
from haven.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

DAILY_BRIEF_QUEUE = "daily_brief"

# Create Celery app
celery_app = Celery(
    "haven",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "haven.workers.brief_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task configuration
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker configuration
    worker_concurrency=settings.WORKER_CONCURRENCY,
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    task_soft_time_limit=settings.WORKER_TASK_SOFT_TIME_LIMIT,
    task_time_limit=settings.WORKER_TASK_TIME_LIMIT,
    worker_max_tasks_per_child=1000,

    # Task routing
    task_routes={
        "haven.workers.brief_tasks.*": {"queue": DAILY_BRIEF_QUEUE},
    },

    # Queue configuration
    task_queues=(
        Queue(DAILY_BRIEF_QUEUE, routing_key=DAILY_BRIEF_QUEUE),
        Queue("celery", routing_key="celery"),  # Default queue
    ),

    # Result backend configuration
    result_expires=86400,  # 1 day

    # Beat scheduler configuration
    beat_schedule={
        "dispatch-daily-briefs": {
            "task": "haven.workers.brief_tasks.dispatch_daily_briefs_task",
            "schedule": settings.DAILY_BRIEF_DISPATCH_INTERVAL_SECONDS,
        },
    },

    # Error handling
    task_reject_on_worker_lost=True,
    task_acks_late=True,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Route worker logging through loguru instead of Celery's own handlers."""
    setup_logging()


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
    """Handle task pre-run signal."""
    logger.info(f"Task {sender.name} started (ID: {task_id})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **kwds):
    """Handle task post-run signal."""
    logger.info(f"Task {sender.name} completed (ID: {task_id}, state: {state})")


@task_retry.connect
def task_retry_handler(sender=None, request=None, reason=None, einfo=None, **kwds):
    """Handle task retry signal."""
    logger.warning(f"Task {sender.name} retrying: {reason}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
    """Handle task failure signal."""
    logger.error(f"Task {sender.name} failed (ID: {task_id}): {exception}")


if __name__ == "__main__":
    celery_app.start()
