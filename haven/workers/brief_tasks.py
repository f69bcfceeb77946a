"""
Background tasks for daily brief generation and dispatch.
"""

import asyncio
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from haven.api.schemas.brief import BriefConfig
from haven.core.config import settings
from haven.core.exceptions import ConfigurationException
from haven.core.logging import get_logger
from haven.db.session import AsyncSessionLocal, async_engine
from haven.services.brief_repository import BriefRepository, DigestScheduleRecord
from haven.services.daily_brief_service import DailyBriefService
from haven.workers.celery_app import DAILY_BRIEF_QUEUE, celery_app

logger = get_logger(__name__)


def build_brief_config(
    timezone: Optional[str] = None,
    lookback_days: Optional[int] = None,
    forward_days: Optional[int] = None,
    recipients: Optional[List[str]] = None,
) -> BriefConfig:
    """BriefConfig from task arguments; unset values take the settings defaults."""
    values: Dict[str, Any] = {
        "timezone": timezone,
        "lookback_days": lookback_days,
        "forward_days": forward_days,
        "recipient_override": recipients,
    }
    return BriefConfig(**{key: value for key, value in values.items() if value is not None})


def digest_task_kwargs(record: DigestScheduleRecord) -> Dict[str, Any]:
    """
    Generation task arguments for one daily_digest automation.

    The schedule's timezone wins over the organisation's, which wins over the
    configured default. An empty recipientEmails list means "send to admins".
    """
    schedule = record.schedule or {}
    parameters = record.parameters or {}

    config = build_brief_config(
        timezone=(
            schedule.get("timezone")
            or record.organization_timezone
            or settings.DAILY_BRIEF_DEFAULT_TIMEZONE
        ),
        lookback_days=parameters.get("lookbackDays"),
        forward_days=parameters.get("forwardDays"),
        recipients=parameters.get("recipientEmails") or None,
    )
    return {
        "organization_id": record.organization_id,
        "timezone": config.timezone,
        "lookback_days": config.lookback_days,
        "forward_days": config.forward_days,
        "recipients": list(config.recipient_override) if config.recipient_override is not None else None,
    }


@celery_app.task(bind=True, max_retries=3)
def generate_daily_brief_task(
    self,
    organization_id: str,
    timezone: Optional[str] = None,
    lookback_days: Optional[int] = None,
    forward_days: Optional[int] = None,
    recipients: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Generate the daily brief snapshot for one organisation."""
    try:
        config = build_brief_config(timezone, lookback_days, forward_days, recipients)
    except ValidationError as exc:
        # Bad arguments will not get better on retry
        logger.error(f"Invalid daily brief configuration for {organization_id}: {exc}")
        raise ConfigurationException(
            f"Invalid daily brief configuration for organization {organization_id}",
            details={"organization_id": organization_id, "errors": exc.errors()},
        ) from exc

    try:
        logger.info(f"Starting daily brief generation for {organization_id}")

        # Run async task in sync context
        result = asyncio.run(_generate_brief_async(organization_id, config))

        logger.info(
            f"Daily brief generation completed for {organization_id}: "
            f"{result['recipient_count']} recipients"
        )
        return result

    except ConfigurationException:
        raise
    except Exception as exc:
        logger.error(f"Daily brief generation failed for {organization_id}: {exc}")
        # Retry with exponential backoff
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))


async def _generate_brief_async(
    organization_id: str,
    config: BriefConfig,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Async helper for brief generation."""
    try:
        service = DailyBriefService(session_factory=AsyncSessionLocal)
        brief = await service.aggregate_daily_brief(organization_id, config, now=now)
        return {
            "success": True,
            "organization_id": organization_id,
            "recipient_count": brief.recipient_count,
            "brief": brief.to_payload(),
        }
    finally:
        # Pooled connections belong to this event loop
        await async_engine.dispose()


@celery_app.task(bind=True, max_retries=3)
def dispatch_daily_briefs_task(self) -> Dict[str, Any]:
    """Enqueue one brief generation per organisation with an enabled daily digest."""
    try:
        logger.info("Starting daily brief dispatch")

        # Run async task in sync context
        schedules = asyncio.run(_load_digest_schedules_async(datetime.now(dt_timezone.utc)))

        dispatched: List[str] = []
        skipped: List[str] = []
        for record in schedules:
            try:
                kwargs = digest_task_kwargs(record)
            except (ValidationError, ConfigurationException) as e:
                logger.warning(f"Skipping daily brief for {record.organization_id}: {e}")
                skipped.append(record.organization_id)
                continue

            generate_daily_brief_task.apply_async(kwargs=kwargs, queue=DAILY_BRIEF_QUEUE)
            dispatched.append(record.organization_id)

        logger.info(f"Daily brief dispatch completed: {len(dispatched)} queued, {len(skipped)} skipped")
        return {
            "success": True,
            "dispatched": len(dispatched),
            "organization_ids": dispatched,
            "skipped": skipped,
        }

    except Exception as exc:
        logger.error(f"Daily brief dispatch failed: {exc}")
        # Retry with exponential backoff
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))


async def _load_digest_schedules_async(now: datetime) -> List[DigestScheduleRecord]:
    """Async helper reading daily digest automations due at `now`."""
    try:
        return await BriefRepository(AsyncSessionLocal).list_daily_digest_schedules(now)
    finally:
        await async_engine.dispose()
