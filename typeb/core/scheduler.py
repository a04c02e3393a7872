"""Scheduler for automated jobs (overdue task escalation)."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from typeb.core import db_client
from typeb.core.config import Constants, settings
from typeb.core.date_utils import is_in_quiet_hours, now_iso, now_utc, to_datetime, to_iso
from typeb.domain.activity import NotificationType
from typeb.domain.task import EscalationLevel
from typeb.models.service_models import EscalationReport
from typeb.services import notification_service, task_service


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

# Last run outcome per job, exposed on /health
job_status: dict[str, dict[str, Any]] = {}


async def retry_job_with_backoff(
    job_func: Callable[[], Awaitable[Any]],
    job_name: str,
    max_retries: int = 3,
    base_delay: float = 2.0,
) -> None:
    """Execute a job with retry logic and exponential backoff.

    Args:
        job_func: Async function to execute
        job_name: Name of the job for tracking
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds for exponential backoff
    """
    job_status[job_name] = {"status": "running", "started_at": now_iso()}

    last_error = None
    for attempt in range(max_retries):
        try:
            logger.info("Executing %s (attempt %d/%d)", job_name, attempt + 1, max_retries)
            await job_func()
            job_status[job_name] = {"status": "success", "finished_at": now_iso()}
            return
        except Exception as e:
            last_error = str(e)
            logger.error("%s failed on attempt %d/%d: %s", job_name, attempt + 1, max_retries, e)
            if attempt < max_retries - 1:
                await asyncio.sleep(base_delay * (2**attempt))

    job_status[job_name] = {"status": "failed", "finished_at": now_iso(), "error": last_error}


async def escalate_overdue_tasks(now: datetime | None = None) -> EscalationReport:
    """Escalate overdue pending tasks one level at a time.

    Level 0 to 1 reminds the assignee as soon as a task is overdue. Level 1
    to 2 notifies the family's parents once the task has been overdue for
    ``escalation_manager_hours``. Nothing is sent during quiet hours.
    """
    moment = now or now_utc()
    report = EscalationReport()

    if is_in_quiet_hours(moment, settings.quiet_hours_start, settings.quiet_hours_end):
        logger.info("escalation_skipped_quiet_hours", extra={"hour": moment.hour})
        report.skipped_quiet_hours = True
        return report

    manager_threshold = timedelta(hours=settings.escalation_manager_hours)

    for task in await task_service.get_overdue_tasks(now=moment):
        level = task.get("escalation_level") or EscalationLevel.NONE
        overdue_for = moment - to_datetime(task["due_date"])

        if level == EscalationLevel.NONE:
            result = await notification_service.notify_user(
                user_id=task["assigned_to"],
                notification_type=NotificationType.TASK_REMINDER,
                title="Task overdue",
                body=f'"{task["title"]}" is overdue. Please complete it as soon as possible.',
                family_id=task["family_id"],
                data={"task_id": task["id"]},
            )
            delivered = result.success
            new_level = EscalationLevel.REMINDED
        elif level == EscalationLevel.REMINDED and overdue_for >= manager_threshold:
            hours = int(overdue_for.total_seconds() // 3600)
            results = await notification_service.notify_parents(
                family_id=task["family_id"],
                notification_type=NotificationType.TASK_ESCALATION,
                title="Task significantly overdue",
                body=f'"{task["title"]}" has been overdue for {hours} hours',
                data={"task_id": task["id"], "assigned_to": task["assigned_to"]},
            )
            delivered = any(r.success for r in results)
            new_level = EscalationLevel.MANAGER_NOTIFIED
        else:
            continue

        # Guard: The level only advances once someone was actually notified
        if not delivered:
            logger.warning("escalation_not_delivered", extra={"task_id": task["id"], "level": int(new_level)})
            continue

        if new_level == EscalationLevel.REMINDED:
            report.reminders_sent += 1
        else:
            report.managers_notified += 1

        await db_client.update_record(
            collection="tasks",
            record_id=task["id"],
            data={"escalation_level": new_level, "last_reminder_sent": to_iso(moment)},
        )
        logger.info("task_escalated", extra={"task_id": task["id"], "level": int(new_level)})

    logger.info(
        "escalation_run_complete",
        extra={"reminders_sent": report.reminders_sent, "managers_notified": report.managers_notified},
    )
    return report


async def run_escalation_job() -> None:
    """Scheduled entry point for the hourly escalation sweep."""
    await escalate_overdue_tasks()


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_escalation_job, "task_escalation"],
        trigger=CronTrigger(hour="*", minute=Constants.ESCALATION_CHECK_MINUTE),
        id="task_escalation",
        name="Escalate Overdue Tasks",
        replace_existing=True,
    )
    logger.info("Scheduled task escalation job: hourly at minute %d", Constants.ESCALATION_CHECK_MINUTE)

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
