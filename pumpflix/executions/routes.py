"""Execution API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.billing.dependencies import require_execution_quota
from pumpflix.billing.models import Subscription
from pumpflix.database import get_postgres_session
from pumpflix.executions.dependencies import get_execution_service
from pumpflix.executions.models import ExecutionStatus
from pumpflix.executions.schemas import (
    CompletionStatus,
    ExecutionComplete,
    ExecutionCreate,
    ExecutionListResponse,
    ExecutionResponse,
)
from pumpflix.executions.service import ExecutionService
from pumpflix.workflows.service import WorkflowService

router = APIRouter(prefix="/executions", tags=["Executions"])


@router.post("", response_model=ExecutionResponse, status_code=status.HTTP_201_CREATED)
async def start_execution(
    data: ExecutionCreate,
    current_user: User = Depends(get_current_user),
    quota: Subscription = Depends(require_execution_quota),
    db: AsyncSession = Depends(get_postgres_session),
    service: ExecutionService = Depends(get_execution_service),
):
    """Start an execution of a workflow."""
    workflow = await WorkflowService(db).get_workflow(data.workflow_id, current_user)
    return await service.start_execution(current_user, workflow, data.input)


@router.get("", response_model=ExecutionListResponse)
async def list_executions(
    workflow_id: Optional[int] = Query(None, description="Filter by workflow"),
    status: Optional[ExecutionStatus] = Query(None, description="Filter by status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    service: ExecutionService = Depends(get_execution_service),
):
    """List executions of the caller's organization."""
    items, total = await service.list_executions(
        current_user, workflow_id=workflow_id, status=status, limit=limit, offset=offset
    )
    return ExecutionListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{execution_id}", response_model=ExecutionResponse)
async def get_execution(
    execution_id: int,
    current_user: User = Depends(get_current_user),
    service: ExecutionService = Depends(get_execution_service),
):
    """Get an execution."""
    return await service.get_execution(execution_id, current_user)


@router.post("/{execution_id}/complete", response_model=ExecutionResponse)
async def complete_execution(
    execution_id: int,
    data: ExecutionComplete,
    current_user: User = Depends(get_current_user),
    service: ExecutionService = Depends(get_execution_service),
):
    """Record the outcome of a running execution."""
    return await service.complete_execution(
        execution_id,
        current_user,
        success=data.status == CompletionStatus.SUCCESS,
        error=data.error,
    )


@router.post("/{execution_id}/cancel", response_model=ExecutionResponse)
async def cancel_execution(
    execution_id: int,
    current_user: User = Depends(get_current_user),
    service: ExecutionService = Depends(get_execution_service),
):
    """Cancel an execution."""
    return await service.cancel_execution(execution_id, current_user)
