"""Celery tasks for background jobs.

Every task runs its async handler on a fresh event loop with a short-lived
engine, since worker processes do not share the API's connection pool.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import aiosmtplib
import httpx
import structlog
from celery import Task
from kombu.exceptions import OperationalError
from sqlalchemy.exc import OperationalError as DatabaseOperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from pumpflix.config import settings
from pumpflix.jobs.processor import JobProcessor, send_email_alert, send_slack_alert
from pumpflix.jobs.queue import JobQueue
from pumpflix.metrics import metrics
from pumpflix.worker import celery_app

logger = structlog.get_logger()

RETRYABLE_ERRORS = (
    aiosmtplib.SMTPException,
    httpx.HTTPError,
    OperationalError,
    DatabaseOperationalError,
    ConnectionError,
)


class PumpFlixTask(Task):
    """Base class for background jobs: retries transient errors and reports lifecycle."""

    autoretry_for = RETRYABLE_ERRORS
    retry_backoff = True
    retry_jitter = True
    max_retries = settings.job_max_retries

    def before_start(self, task_id, args, kwargs):
        """Called before task execution starts."""
        logger.info("Starting job", task_id=task_id, task_name=self.name)
        metrics.job_event(self.name, "started")

    def on_success(self, retval, task_id, args, kwargs):
        """Called on successful task completion."""
        logger.info("Job completed", task_id=task_id, task_name=self.name)
        metrics.job_event(self.name, "completed")

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        """Called when the task is retried."""
        logger.warning("Retrying job", task_id=task_id, task_name=self.name, error=str(exc))
        metrics.job_event(self.name, "retried")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Called on task failure."""
        logger.error("Job failed", task_id=task_id, task_name=self.name, error=str(exc))
        metrics.job_event(self.name, "failed")


async def _with_processor(handler: Callable[[JobProcessor], Awaitable[Dict[str, Any]]]) -> Dict[str, Any]:
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            return await handler(JobProcessor(session, JobQueue(celery_app)))
    finally:
        await engine.dispose()


@celery_app.task(base=PumpFlixTask, name="pumpflix.jobs.scheduled_export", queue="exports")
def scheduled_export(export_job_id: int) -> Dict[str, Any]:
    """Render an export job."""
    return asyncio.run(_with_processor(lambda p: p.scheduled_export(export_job_id)))


@celery_app.task(base=PumpFlixTask, name="pumpflix.jobs.execution_audit", queue="audits")
def execution_audit(execution_id: int) -> Dict[str, Any]:
    """Audit a finished execution."""
    return asyncio.run(_with_processor(lambda p: p.execution_audit(execution_id)))


@celery_app.task(
    base=PumpFlixTask, name="pumpflix.jobs.workflow_execution", queue="workflow-executions"
)
def workflow_execution(execution_id: int) -> Dict[str, Any]:
    """Run a workflow execution."""
    return asyncio.run(_with_processor(lambda p: p.workflow_execution(execution_id)))


@celery_app.task(base=PumpFlixTask, name="pumpflix.jobs.email_alert", queue="notifications")
def email_alert(to: Union[str, List[str]], subject: str, body: str) -> Dict[str, Any]:
    """Send an alert email."""
    return asyncio.run(send_email_alert(to, subject, body))


@celery_app.task(base=PumpFlixTask, name="pumpflix.jobs.slack_alert", queue="notifications")
def slack_alert(
    message: str, channel: Optional[str] = None, webhook_url: Optional[str] = None
) -> Dict[str, Any]:
    """Post an alert to Slack."""
    return asyncio.run(send_slack_alert(message, channel=channel, webhook_url=webhook_url))
