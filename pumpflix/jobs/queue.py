"""Background job queue.

API code enqueues jobs by type; each type is bound to a Celery task and the
queue its worker listens on. Tasks are sent by name so the API process never
imports the worker-side handlers.
"""

from enum import Enum
from typing import Any, Dict

import structlog
from kombu.exceptions import OperationalError

from pumpflix.exceptions import ServiceUnavailableError
from pumpflix.worker import celery_app

logger = structlog.get_logger()


class QueueName(str, Enum):
    """Worker queues."""
    EXPORTS = "exports"
    AUDITS = "audits"
    NOTIFICATIONS = "notifications"
    WORKFLOW_EXECUTIONS = "workflow-executions"


class JobType(str, Enum):
    """Job types accepted by the queue."""
    SCHEDULED_EXPORT = "scheduled-export"
    EXECUTION_AUDIT = "execution-audit"
    EMAIL_ALERT = "email-alert"
    SLACK_ALERT = "slack-alert"
    WORKFLOW_EXECUTION = "workflow-execution"


JOB_ROUTES: Dict[JobType, tuple] = {
    JobType.SCHEDULED_EXPORT: ("pumpflix.jobs.scheduled_export", QueueName.EXPORTS),
    JobType.EXECUTION_AUDIT: ("pumpflix.jobs.execution_audit", QueueName.AUDITS),
    JobType.EMAIL_ALERT: ("pumpflix.jobs.email_alert", QueueName.NOTIFICATIONS),
    JobType.SLACK_ALERT: ("pumpflix.jobs.slack_alert", QueueName.NOTIFICATIONS),
    JobType.WORKFLOW_EXECUTION: ("pumpflix.jobs.workflow_execution", QueueName.WORKFLOW_EXECUTIONS),
}


class JobQueue:
    """Enqueue background jobs by type."""

    def __init__(self, app=None):
        self.app = app or celery_app

    def enqueue(self, job_type: JobType, payload: Dict[str, Any]) -> str:
        """Send a job to its queue and return the job ID."""
        job_type = JobType(job_type)
        task_name, queue = JOB_ROUTES[job_type]

        try:
            result = self.app.send_task(task_name, kwargs=payload, queue=queue.value)
        except OperationalError as e:
            logger.error("Failed to enqueue job", job_type=job_type.value, error=str(e))
            raise ServiceUnavailableError("Job queue is unavailable") from e

        logger.info("Job enqueued", job_type=job_type.value, job_id=result.id, queue=queue.value)
        return result.id


# Global queue instance
job_queue = JobQueue()


def get_job_queue() -> JobQueue:
    """FastAPI dependency for the job queue."""
    return job_queue
