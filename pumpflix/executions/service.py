"""Execution service.

There is no node runtime: an execution is recorded as RUNNING, handed to the
workflow-execution job and later completed, either by the worker or through
the API.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.billing.service import BillingService
from pumpflix.db_types import as_utc, utcnow
from pumpflix.exceptions import ServiceUnavailableError
from pumpflix.executions.exceptions import ExecutionNotFoundError, ExecutionStateError
from pumpflix.executions.models import ExecutionLog, ExecutionStatus
from pumpflix.jobs.queue import JobQueue, JobType
from pumpflix.notifications.models import NotificationType
from pumpflix.notifications.service import NotificationService
from pumpflix.realtime.manager import StatusEvent, StatusEventType, StatusRelay
from pumpflix.workflows.exceptions import WorkflowArchivedError
from pumpflix.workflows.models import Workflow

logger = structlog.get_logger()


def finish_execution(
    execution: ExecutionLog, status: ExecutionStatus, error: Optional[str] = None
) -> None:
    """Move an execution to a terminal status and stamp its duration."""
    finished_at = utcnow()
    execution.status = status
    execution.error = error
    execution.finished_at = finished_at
    execution.duration_ms = int((finished_at - as_utc(execution.started_at)).total_seconds() * 1000)


class ExecutionService:
    """Start, complete and query workflow executions."""

    def __init__(
        self,
        db: AsyncSession,
        job_queue: Optional[JobQueue] = None,
        relay: Optional[StatusRelay] = None,
        billing: Optional[BillingService] = None,
    ):
        self.db = db
        self.job_queue = job_queue
        self.relay = relay
        self.billing = billing or BillingService(db)

    async def _publish(self, execution: ExecutionLog, event_type: StatusEventType) -> None:
        if not self.relay:
            return
        await self.relay.publish(
            StatusEvent(
                workflow_id=execution.workflow_id,
                execution_id=execution.id,
                event_type=event_type,
                data={
                    "status": execution.status.value,
                    "duration_ms": execution.duration_ms,
                    "error": execution.error,
                },
            )
        )

    def _enqueue(self, job_type: JobType, payload: Dict[str, Any]) -> Optional[str]:
        if not self.job_queue:
            return None
        return self.job_queue.enqueue(job_type, payload)

    async def start_execution(
        self, user: User, workflow: Workflow, input_data: Optional[Dict[str, Any]] = None
    ) -> ExecutionLog:
        """Start a quota-checked execution of a workflow."""
        if workflow.is_archived:
            raise WorkflowArchivedError("Cannot execute an archived workflow")

        subscription = await self.billing.check_execution_quota(user.org_id, user.id)

        now = utcnow()
        execution = ExecutionLog(
            workflow_id=workflow.id,
            user_id=user.id,
            org_id=user.org_id,
            status=ExecutionStatus.RUNNING,
            input=input_data or {},
            meta={"trigger": "manual"},
            started_at=now,
        )
        self.db.add(execution)
        await self.billing.record_execution(subscription)
        workflow.last_execution_at = now
        await self.db.flush()

        try:
            job_id = self._enqueue(JobType.WORKFLOW_EXECUTION, {"execution_id": execution.id})
        except ServiceUnavailableError:
            await self.db.rollback()
            raise
        await self.db.commit()

        await self._publish(execution, StatusEventType.EXECUTION_STARTED)

        logger.info(
            "Execution started",
            execution_id=execution.id,
            workflow_id=workflow.id,
            org_id=user.org_id,
            job_id=job_id,
        )
        return execution

    async def get_execution(self, execution_id: int, user: User) -> ExecutionLog:
        """Get an execution of the user's organization."""
        execution = await self.db.get(ExecutionLog, execution_id)
        if not execution or execution.org_id != user.org_id:
            raise ExecutionNotFoundError()
        return execution

    async def complete_execution(
        self, execution_id: int, user: User, success: bool, error: Optional[str] = None
    ) -> ExecutionLog:
        """Record the outcome of a running execution."""
        execution = await self.get_execution(execution_id, user)
        if execution.status != ExecutionStatus.RUNNING:
            raise ExecutionStateError(
                f"Execution is {execution.status.value}, only running executions can be completed"
            )

        if success:
            finish_execution(execution, ExecutionStatus.SUCCESS)
        else:
            finish_execution(execution, ExecutionStatus.FAILED, error or "Execution failed")
            await NotificationService(self.db).notify(
                execution.user_id,
                execution.org_id,
                NotificationType.EXECUTION_FAILED,
                f"Execution {execution.id} failed",
                {"execution_id": execution.id, "workflow_id": execution.workflow_id},
            )
        await self.db.commit()

        self._enqueue(JobType.EXECUTION_AUDIT, {"execution_id": execution.id})
        await self._publish(
            execution,
            StatusEventType.EXECUTION_COMPLETED if success else StatusEventType.EXECUTION_FAILED,
        )

        logger.info(
            "Execution completed",
            execution_id=execution.id,
            status=execution.status.value,
            duration_ms=execution.duration_ms,
        )
        return execution

    async def cancel_execution(self, execution_id: int, user: User) -> ExecutionLog:
        """Cancel a pending or running execution."""
        execution = await self.get_execution(execution_id, user)
        if execution.is_finished:
            raise ExecutionStateError(f"Execution is already {execution.status.value}")

        finish_execution(execution, ExecutionStatus.CANCELLED)
        await self.db.commit()

        await self._publish(execution, StatusEventType.EXECUTION_CANCELLED)

        logger.info("Execution cancelled", execution_id=execution.id)
        return execution

    async def list_executions(
        self,
        user: User,
        workflow_id: Optional[int] = None,
        status: Optional[ExecutionStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ExecutionLog], int]:
        """List executions of the user's organization, newest first."""
        query = select(ExecutionLog).where(ExecutionLog.org_id == user.org_id)
        if workflow_id is not None:
            query = query.where(ExecutionLog.workflow_id == workflow_id)
        if status is not None:
            query = query.where(ExecutionLog.status == status)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(ExecutionLog.started_at.desc(), ExecutionLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0
