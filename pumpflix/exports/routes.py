"""Export template API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session
from pumpflix.exports.models import ExportCategory, ExportType, TemplateVersionStatus
from pumpflix.exports.schemas import (
    ExportJobResponse,
    ExportRunRequest,
    ExportTemplateCreate,
    ExportTemplateResponse,
    VersionComparison,
    VersionCreate,
    VersionResponse,
    VersionUpdate,
)
from pumpflix.exports.service import ExportTemplateService
from pumpflix.jobs.queue import JobQueue, get_job_queue

router = APIRouter(prefix="/export-templates", tags=["Export Templates"])


def get_export_service(
    db: AsyncSession = Depends(get_postgres_session),
    job_queue: JobQueue = Depends(get_job_queue),
) -> ExportTemplateService:
    """Get export template service instance."""
    return ExportTemplateService(db, job_queue)


@router.get("", response_model=List[ExportTemplateResponse])
async def list_export_templates(
    category: Optional[ExportCategory] = Query(None),
    type: Optional[ExportType] = Query(None, description="Filter by export type"),
    tags: Optional[List[str]] = Query(None, description="Templates carrying all of these tags"),
    status: Optional[TemplateVersionStatus] = Query(None, description="Filter by version status"),
    search: Optional[str] = Query(None, description="Terms matched against name and description"),
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """List export templates visible to the user."""
    return await service.list_templates(current_user, category, type, tags, status, search)


@router.post("", response_model=ExportTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_export_template(
    data: ExportTemplateCreate,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Create an export template and its first version."""
    return await service.create_template(current_user, data)


@router.patch("/versions/{version_id}", response_model=VersionResponse)
async def update_version(
    version_id: int,
    data: VersionUpdate,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Update notes, tags or status of a version."""
    return await service.update_version(version_id, current_user, data)


@router.get("/versions/{version_id}/compare/{other_id}", response_model=VersionComparison)
async def compare_versions(
    version_id: int,
    other_id: int,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Compare the definitions of two versions."""
    return await service.compare_versions(version_id, other_id, current_user)


@router.get("/jobs/{job_id}", response_model=ExportJobResponse)
async def get_export_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Get the status and output of an export job."""
    return await service.get_job(job_id, current_user)


@router.get("/{template_id}", response_model=ExportTemplateResponse)
async def get_export_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Get an export template."""
    return await service.get_template(template_id, current_user)


@router.post(
    "/{template_id}/versions",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_version(
    template_id: int,
    data: VersionCreate,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Add a version to a template."""
    return await service.create_version(template_id, current_user, data)


@router.get("/{template_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """List versions of a template."""
    return await service.list_versions(template_id, current_user)


@router.post(
    "/{template_id}/run",
    response_model=ExportJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def run_export_template(
    template_id: int,
    data: Optional[ExportRunRequest] = None,
    current_user: User = Depends(get_current_user),
    service: ExportTemplateService = Depends(get_export_service),
):
    """Queue an export run."""
    return await service.run_template(template_id, current_user, data or ExportRunRequest())
