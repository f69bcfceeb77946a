"""
Background workers for the Haven daily brief.
"""

from .celery_app import celery_app
from .brief_tasks import dispatch_daily_briefs_task, generate_daily_brief_task

__all__ = [
    "celery_app",
    "generate_daily_brief_task",
    "dispatch_daily_briefs_task",
]
