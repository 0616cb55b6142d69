"""AI API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.ai.generator import WorkflowGenerator, get_workflow_generator
from pumpflix.ai.schemas import (
    GenerateRequest,
    GenerateResponse,
    PromptCreate,
    PromptListResponse,
    PromptRender,
    PromptResponse,
    PromptUpdate,
    RenderedPrompt,
)
from pumpflix.ai.service import PromptService
from pumpflix.auth.dependencies import get_current_tenant_id, get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session
from pumpflix.workflows.schemas import WorkflowCreate
from pumpflix.workflows.service import WorkflowService

router = APIRouter(prefix="/ai", tags=["AI"])


def get_prompt_service(db: AsyncSession = Depends(get_postgres_session)) -> PromptService:
    """Get prompt service instance."""
    return PromptService(db)


@router.post("/prompts", response_model=PromptResponse, status_code=status.HTTP_201_CREATED)
async def create_prompt(
    data: PromptCreate,
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """Create a prompt template."""
    return await service.create_prompt(current_user, data)


@router.get("/prompts", response_model=PromptListResponse)
async def list_prompts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """List prompt templates of the organization."""
    items, total = await service.list_prompts(current_user, category, page, limit)
    return PromptListResponse(items=items, total=total, page=page, limit=limit)


@router.get("/prompts/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: int,
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """Get a prompt template."""
    return await service.get_prompt(prompt_id, current_user)


@router.patch("/prompts/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: int,
    data: PromptUpdate,
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """Update a prompt template."""
    return await service.update_prompt(prompt_id, current_user, data)


@router.delete("/prompts/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prompt(
    prompt_id: int,
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """Delete a prompt template."""
    await service.delete_prompt(prompt_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/prompts/{prompt_id}/render", response_model=RenderedPrompt)
async def render_prompt(
    prompt_id: int,
    data: PromptRender,
    current_user: User = Depends(get_current_user),
    service: PromptService = Depends(get_prompt_service),
):
    """Render a prompt template with variables."""
    return await service.render_prompt(prompt_id, current_user, data.variables)


@router.post("/generate", response_model=GenerateResponse)
async def generate_workflow(
    data: GenerateRequest,
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    generator: WorkflowGenerator = Depends(get_workflow_generator),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Generate a workflow graph from a description, optionally saving it as a draft."""
    workflow = await generator.generate(data.prompt)

    saved = None
    if data.save:
        saved = await WorkflowService(db).create_workflow(
            current_user,
            WorkflowCreate(
                name=data.name or data.prompt[:80],
                description=data.prompt,
                config=workflow,
                tags=["ai-generated"],
            ),
            tenant_id,
        )
    return GenerateResponse(workflow=workflow, saved=saved)
