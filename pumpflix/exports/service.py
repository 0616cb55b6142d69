"""Export template service."""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import and_, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.db_types import utcnow
from pumpflix.exceptions import ServiceUnavailableError
from pumpflix.exports.defaults import DEFAULT_EXPORT_TEMPLATES
from pumpflix.exports.diff import compare_schemas
from pumpflix.exports.exceptions import (
    DuplicateVersionError,
    ExportJobNotFoundError,
    ExportTemplateNotFoundError,
    TemplateVersionNotFoundError,
    VersionMismatchError,
)
from pumpflix.exports.models import (
    ExportCategory,
    ExportJob,
    ExportJobStatus,
    ExportTemplate,
    ExportTemplateVersion,
    ExportType,
    TemplateVersionStatus,
)
from pumpflix.exports.renderer import ExportRenderer
from pumpflix.exports.schemas import (
    ExportRunRequest,
    ExportTemplateCreate,
    VersionComparison,
    VersionCreate,
    VersionUpdate,
)
from pumpflix.jobs.queue import JobQueue, JobType

logger = structlog.get_logger()


class ExportTemplateService:
    """Versioned export templates and their runs."""

    def __init__(self, db: AsyncSession, job_queue: Optional[JobQueue] = None):
        self.db = db
        self.job_queue = job_queue

    # Templates

    async def list_templates(
        self,
        user: User,
        category: Optional[ExportCategory] = None,
        export_type: Optional[ExportType] = None,
        tags: Optional[List[str]] = None,
        status: Optional[TemplateVersionStatus] = None,
        search: Optional[str] = None,
    ) -> List[ExportTemplate]:
        """Templates visible to the user, newest first."""
        query = select(ExportTemplate).where(
            or_(
                ExportTemplate.is_public.is_(True),
                ExportTemplate.created_by == user.id,
                ExportTemplate.org_id == user.org_id,
            )
        )
        if category:
            query = query.where(ExportTemplate.category == category)
        if export_type:
            query = query.where(ExportTemplate.type == export_type)
        if status:
            query = query.where(
                exists().where(
                    and_(
                        ExportTemplateVersion.template_id == ExportTemplate.id,
                        ExportTemplateVersion.version == ExportTemplate.current_version,
                        ExportTemplateVersion.status == status,
                    )
                )
            )
        if search:
            for term in search.split():
                pattern = f"%{term}%"
                query = query.where(
                    or_(ExportTemplate.name.ilike(pattern), ExportTemplate.description.ilike(pattern))
                )

        result = await self.db.execute(
            query.order_by(ExportTemplate.created_at.desc(), ExportTemplate.id.desc())
        )
        templates = list(result.scalars().all())

        # Tags live in a JSON column, matched here to stay portable across databases
        if tags:
            wanted = set(tags)
            templates = [t for t in templates if wanted.issubset(set(t.tags or []))]
        return templates

    async def create_template(
        self, user: Optional[User], data: ExportTemplateCreate, key: Optional[str] = None
    ) -> ExportTemplate:
        """Create a template together with its first, released version.

        Templates created without a user are global defaults.
        """
        template = ExportTemplate(
            key=key,
            name=data.name,
            description=data.description,
            category=data.category,
            type=data.type,
            format=data.format,
            tags=data.tags,
            is_public=data.is_public,
            current_version=data.version,
            org_id=user.org_id if user else None,
            created_by=user.id if user else None,
        )
        self.db.add(template)
        await self.db.flush()

        self.db.add(
            ExportTemplateVersion(
                template_id=template.id,
                version=data.version,
                definition=data.definition,
                change_notes=data.change_notes,
                tags=data.tags,
                status=TemplateVersionStatus.RELEASED,
                created_by=template.created_by,
            )
        )
        await self.db.commit()

        logger.info(
            "Export template created",
            template_id=template.id,
            category=template.category.value,
            type=template.type.value,
        )
        return template

    async def get_template(self, template_id: int, user: User) -> ExportTemplate:
        """Get a template visible to the user."""
        template = await self.db.get(ExportTemplate, template_id)
        if not template or not template.is_visible_to(user.id, user.org_id):
            raise ExportTemplateNotFoundError()
        return template

    # Versions

    async def _find_version(self, template_id: int, version: str) -> Optional[ExportTemplateVersion]:
        return await self.db.scalar(
            select(ExportTemplateVersion).where(
                ExportTemplateVersion.template_id == template_id,
                ExportTemplateVersion.version == version,
            )
        )

    async def create_version(
        self, template_id: int, user: User, data: VersionCreate
    ) -> ExportTemplateVersion:
        """Add a version to a template."""
        template = await self.get_template(template_id, user)
        if await self._find_version(template.id, data.version):
            raise DuplicateVersionError(f"Version {data.version} already exists")

        version = ExportTemplateVersion(
            template_id=template.id,
            version=data.version,
            definition=data.definition,
            change_notes=data.change_notes,
            performance_notes=data.performance_notes,
            tags=data.tags,
            status=data.status,
            created_by=user.id,
        )
        self.db.add(version)
        if data.status == TemplateVersionStatus.RELEASED:
            template.current_version = data.version
        await self.db.commit()

        logger.info(
            "Export template version created",
            template_id=template.id,
            version=data.version,
            status=data.status.value,
        )
        return version

    async def list_versions(self, template_id: int, user: User) -> List[ExportTemplateVersion]:
        """Versions of a template, newest first."""
        template = await self.get_template(template_id, user)
        result = await self.db.execute(
            select(ExportTemplateVersion)
            .where(ExportTemplateVersion.template_id == template.id)
            .order_by(ExportTemplateVersion.created_at.desc(), ExportTemplateVersion.id.desc())
        )
        return list(result.scalars().all())

    async def get_version(self, version_id: int, user: User) -> ExportTemplateVersion:
        """Get a version of a template visible to the user."""
        version = await self.db.get(ExportTemplateVersion, version_id)
        if not version:
            raise TemplateVersionNotFoundError()
        try:
            await self.get_template(version.template_id, user)
        except ExportTemplateNotFoundError:
            raise TemplateVersionNotFoundError()
        return version

    async def update_version(
        self, version_id: int, user: User, data: VersionUpdate
    ) -> ExportTemplateVersion:
        """Update notes, tags or status of a version."""
        version = await self.get_version(version_id, user)

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is not None:
                setattr(version, field, value)

        if data.status == TemplateVersionStatus.RELEASED:
            template = await self.db.get(ExportTemplate, version.template_id)
            template.current_version = version.version
        await self.db.commit()

        logger.info("Export template version updated", version_id=version.id, fields=sorted(update_data))
        return version

    async def compare_versions(
        self, version_id: int, other_id: int, user: User
    ) -> VersionComparison:
        """Diff the definitions of two versions of the same template."""
        first = await self.get_version(version_id, user)
        second = await self.get_version(other_id, user)
        if first.template_id != second.template_id:
            raise VersionMismatchError()

        return VersionComparison(
            version1=first.version,
            version2=second.version,
            changes={
                "schema": compare_schemas(first.definition, second.definition),
                "metadata": {
                    "change_notes": second.change_notes,
                    "performance_notes": second.performance_notes,
                    "tags": list(second.tags or []),
                },
            },
        )

    # Runs

    async def _resolve_version(
        self, template: ExportTemplate, requested: Optional[str]
    ) -> ExportTemplateVersion:
        wanted = requested or template.current_version
        if wanted:
            version = await self._find_version(template.id, wanted)
            if not version:
                raise TemplateVersionNotFoundError(f"Version {wanted} not found")
            return version

        version = await self.db.scalar(
            select(ExportTemplateVersion)
            .where(ExportTemplateVersion.template_id == template.id)
            .order_by(ExportTemplateVersion.created_at.desc(), ExportTemplateVersion.id.desc())
            .limit(1)
        )
        if not version:
            raise TemplateVersionNotFoundError("Template has no versions")
        return version

    async def run_template(self, template_id: int, user: User, data: ExportRunRequest) -> ExportJob:
        """Queue an export of the template for the user's organization."""
        template = await self.get_template(template_id, user)
        version = await self._resolve_version(template, data.version)

        params: Dict[str, Any] = {}
        if data.start_date:
            params["start_date"] = data.start_date.isoformat()
        if data.end_date:
            params["end_date"] = data.end_date.isoformat()

        job = ExportJob(
            template_id=template.id,
            version=version.version,
            user_id=user.id,
            org_id=user.org_id,
            status=ExportJobStatus.PENDING,
            format=template.format,
            params=params,
        )
        self.db.add(job)
        await self.db.flush()

        if self.job_queue:
            try:
                self.job_queue.enqueue(JobType.SCHEDULED_EXPORT, {"export_job_id": job.id})
            except ServiceUnavailableError:
                await self.db.rollback()
                raise
        await self.db.commit()

        logger.info(
            "Export queued",
            export_job_id=job.id,
            template_id=template.id,
            version=version.version,
        )
        return job

    async def get_job(self, job_id: int, user: User) -> ExportJob:
        """Get an export job of the user's organization."""
        job = await self.db.get(ExportJob, job_id)
        if not job or job.org_id != user.org_id:
            raise ExportJobNotFoundError()
        return job

    async def process_job(self, job_id: int) -> ExportJob:
        """Render a pending export job. Failures are recorded on the job."""
        job = await self.db.get(ExportJob, job_id)
        if not job:
            raise ExportJobNotFoundError(f"Export job {job_id} not found")

        job.status = ExportJobStatus.PROCESSING
        job.started_at = utcnow()
        await self.db.commit()

        try:
            template = await self.db.get(ExportTemplate, job.template_id)
            version = await self._find_version(job.template_id, job.version)
            if not template or not version:
                raise TemplateVersionNotFoundError(
                    f"Version {job.version} of template {job.template_id} not found"
                )

            params = ExportRunRequest.model_validate(job.params)
            output, row_count = await ExportRenderer(self.db).render(
                template.type,
                version.definition,
                job.org_id,
                job.format,
                params.start_date,
                params.end_date,
            )
        except Exception as e:
            await self.db.rollback()
            job.status = ExportJobStatus.FAILED
            job.error = str(e)
            job.completed_at = utcnow()
            await self.db.commit()
            await self.db.refresh(job)
            logger.error("Export failed", export_job_id=job_id, error=str(e))
            return job

        job.status = ExportJobStatus.COMPLETED
        job.output = output
        job.row_count = row_count
        job.completed_at = utcnow()
        await self.db.commit()

        logger.info("Export completed", export_job_id=job.id, rows=row_count)
        return job

    # Seeding

    async def seed_defaults(self) -> int:
        """Create the default templates that do not exist yet."""
        created = 0
        for entry in DEFAULT_EXPORT_TEMPLATES:
            existing = await self.db.scalar(
                select(ExportTemplate.id).where(ExportTemplate.key == entry["key"])
            )
            if existing:
                continue

            data = ExportTemplateCreate(
                name=entry["name"],
                description=entry["description"],
                category=entry["category"],
                type=entry["type"],
                format=entry["format"],
                tags=entry["tags"],
                is_public=True,
                definition=entry["definition"],
            )
            await self.create_template(None, data, key=entry["key"])
            created += 1
        return created
