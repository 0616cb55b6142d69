"""Handlers run by the background worker.

Each handler receives its own database session; Celery tasks in
``pumpflix.jobs.tasks`` wrap them.
"""

from email.message import EmailMessage
from typing import Any, Dict, List, Optional, Union

import aiosmtplib
import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.audit.service import AuditService
from pumpflix.config import settings
from pumpflix.exceptions import ConfigurationError, NotFoundError
from pumpflix.executions.models import ExecutionLog, ExecutionStatus
from pumpflix.executions.service import finish_execution
from pumpflix.exports.service import ExportTemplateService
from pumpflix.jobs.queue import JobQueue, JobType

logger = structlog.get_logger()


class JobProcessor:
    """Database-backed job handlers."""

    def __init__(self, db: AsyncSession, job_queue: Optional[JobQueue] = None):
        self.db = db
        self.job_queue = job_queue

    async def _get_execution(self, execution_id: int) -> ExecutionLog:
        execution = await self.db.get(ExecutionLog, execution_id)
        if not execution:
            raise NotFoundError(f"Execution {execution_id} not found")
        return execution

    async def scheduled_export(self, export_job_id: int) -> Dict[str, Any]:
        """Render a queued export."""
        job = await ExportTemplateService(self.db).process_job(export_job_id)
        return {"export_job_id": export_job_id, "status": job.status.value, "row_count": job.row_count}

    async def execution_audit(self, execution_id: int) -> Dict[str, Any]:
        """Write the audit entry of a finished execution."""
        execution = await self._get_execution(execution_id)

        entry = await AuditService(self.db).record(
            "workflow.execution",
            "execution",
            org_id=execution.org_id,
            resource_id=execution.id,
            user_id=execution.user_id,
            metadata={
                "workflow_id": execution.workflow_id,
                "status": execution.status.value,
                "duration_ms": execution.duration_ms,
            },
        )
        await self.db.commit()

        logger.info("Execution audited", execution_id=execution.id, audit_log_id=entry.id)
        return {"execution_id": execution.id, "audit_log_id": entry.id}

    async def workflow_execution(self, execution_id: int) -> Dict[str, Any]:
        """Run a workflow execution.

        There is no node runtime, so a running execution completes
        successfully. Executions finished in the meantime are left alone.
        """
        execution = await self._get_execution(execution_id)
        if execution.status != ExecutionStatus.RUNNING:
            logger.info(
                "Execution no longer running, skipping",
                execution_id=execution.id,
                status=execution.status.value,
            )
            return {"execution_id": execution.id, "status": execution.status.value, "skipped": True}

        finish_execution(execution, ExecutionStatus.SUCCESS)
        await self.db.commit()

        if self.job_queue:
            self.job_queue.enqueue(JobType.EXECUTION_AUDIT, {"execution_id": execution.id})

        logger.info(
            "Execution finished",
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            duration_ms=execution.duration_ms,
        )
        return {"execution_id": execution.id, "status": execution.status.value, "skipped": False}


async def send_email_alert(to: Union[str, List[str]], subject: str, body: str) -> Dict[str, Any]:
    """Send a plain-text alert email."""
    if not settings.smtp_host:
        raise ConfigurationError("SMTP is not configured")

    recipients = [to] if isinstance(to, str) else list(to)
    message = EmailMessage()
    message["From"] = settings.smtp_from_email
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(body)

    await aiosmtplib.send(
        message,
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        start_tls=settings.smtp_use_tls,
    )

    logger.info("Email alert sent", recipients=recipients, subject=subject)
    return {"recipients": recipients}


async def send_slack_alert(
    message: str,
    channel: Optional[str] = None,
    webhook_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Post a message to a Slack incoming webhook."""
    url = webhook_url or settings.slack_webhook_url
    if not url:
        raise ConfigurationError("Slack webhook URL is not configured")

    payload: Dict[str, Any] = {"text": message}
    if channel:
        payload["channel"] = channel

    if client is None:
        async with httpx.AsyncClient(timeout=10.0) as own_client:
            response = await own_client.post(url, json=payload)
    else:
        response = await client.post(url, json=payload)
    response.raise_for_status()

    logger.info("Slack alert sent", channel=channel)
    return {"channel": channel, "status_code": response.status_code}
