"""Execution dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.billing.dependencies import get_billing_service
from pumpflix.billing.service import BillingService
from pumpflix.database import get_postgres_session
from pumpflix.executions.service import ExecutionService
from pumpflix.jobs.queue import JobQueue, get_job_queue
from pumpflix.realtime.manager import StatusRelay, get_status_relay


def get_execution_service(
    db: AsyncSession = Depends(get_postgres_session),
    job_queue: JobQueue = Depends(get_job_queue),
    relay: StatusRelay = Depends(get_status_relay),
    billing: BillingService = Depends(get_billing_service),
) -> ExecutionService:
    """Execution service wired to the queue and the status relay."""
    return ExecutionService(db, job_queue=job_queue, relay=relay, billing=billing)
