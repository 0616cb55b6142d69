"""Workflow template service."""

import copy
import json
from typing import Any, Dict, List, Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.config import settings
from pumpflix.credentials.models import CredentialProvider
from pumpflix.exceptions import NotFoundError, ValidationError
from pumpflix.placeholders import find_placeholders_in, render_in
from pumpflix.templates.models import TemplateType, WorkflowInstance, WorkflowTemplate
from pumpflix.templates.schemas import (
    TemplateCreate,
    TemplateInstall,
    TemplatePromote,
    TemplateResponse,
)
from pumpflix.workflows.models import Workflow, WorkflowStatus
from pumpflix.workflows.service import WorkflowService

logger = structlog.get_logger()

CREDENTIAL_PROVIDERS = {provider.value for provider in CredentialProvider}


def extract_required_credentials(config: Dict[str, Any]) -> List[str]:
    """Distinct credential providers used by the nodes of a config."""
    providers: List[str] = []
    for node in (config or {}).get("nodes", []):
        if not isinstance(node, dict):
            continue
        provider = node.get("provider")
        if provider in CREDENTIAL_PROVIDERS and provider not in providers:
            providers.append(provider)
    return providers


def extract_input_variables(config: Dict[str, Any]) -> List[str]:
    """``{{var}}`` placeholders used anywhere in a config."""
    return find_placeholders_in(config or {})


class TemplateNotFoundError(NotFoundError):
    """Raised when a template is missing or not visible."""
    error = "Template not found"


class TemplateService:
    """Template catalogue, promotion and installation."""

    def __init__(self, db: AsyncSession, redis: Optional[Redis] = None):
        self.db = db
        self.redis = redis

    # Cache

    def _cache_key(self, template_type: TemplateType, org_id: int) -> str:
        if template_type == TemplateType.PREBUILT:
            return "templates:prebuilt"
        return f"templates:user:{org_id}"

    async def _cache_get(self, key: str) -> Optional[List[TemplateResponse]]:
        if not self.redis:
            return None
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            logger.warning("Template cache read failed", key=key, error=str(e))
            return None
        if not cached:
            return None
        return [TemplateResponse.model_validate(item) for item in json.loads(cached)]

    async def _cache_set(self, key: str, templates: List[TemplateResponse]) -> None:
        if not self.redis:
            return
        payload = json.dumps([template.model_dump(mode="json") for template in templates])
        try:
            await self.redis.set(key, payload, ex=settings.template_cache_ttl)
        except RedisError as e:
            logger.warning("Template cache write failed", key=key, error=str(e))

    async def invalidate_cache(self, org_id: Optional[int] = None) -> None:
        """Drop cached template lists."""
        if not self.redis:
            return
        keys = ["templates:prebuilt"]
        if org_id is not None:
            keys.append(f"templates:user:{org_id}")
        try:
            await self.redis.delete(*keys)
        except RedisError as e:
            logger.warning("Template cache invalidation failed", keys=keys, error=str(e))

    # Catalogue

    async def list_templates(self, user: User, template_type: TemplateType) -> List[TemplateResponse]:
        """Public prebuilt templates, or the organization's own templates."""
        key = self._cache_key(template_type, user.org_id)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        query = select(WorkflowTemplate).where(WorkflowTemplate.type == template_type)
        if template_type == TemplateType.PREBUILT:
            query = query.where(WorkflowTemplate.is_public.is_(True))
        else:
            query = query.where(WorkflowTemplate.org_id == user.org_id)

        result = await self.db.execute(
            query.order_by(WorkflowTemplate.created_at.desc(), WorkflowTemplate.id.desc())
        )
        templates = [TemplateResponse.model_validate(t) for t in result.scalars().all()]

        await self._cache_set(key, templates)
        return templates

    async def get_template(self, template_id: int, user: User) -> WorkflowTemplate:
        """Get a template visible to the user's organization."""
        template = await self.db.get(WorkflowTemplate, template_id)
        if not template or not template.is_visible_to(user.org_id):
            raise TemplateNotFoundError()
        return template

    async def create_template(
        self, data: TemplateCreate, user: Optional[User] = None
    ) -> WorkflowTemplate:
        """Create a template. Prebuilt templates have no owner organization."""
        template = WorkflowTemplate(
            name=data.name,
            description=data.description,
            category=data.category,
            type=data.type,
            config=data.config,
            thumbnail_url=data.thumbnail_url,
            required_credentials=extract_required_credentials(data.config),
            input_variables=extract_input_variables(data.config),
            is_public=data.is_public,
            org_id=user.org_id if user and data.type == TemplateType.USER else None,
            created_by=user.id if user else None,
        )
        self.db.add(template)
        await self.db.commit()
        await self.invalidate_cache(template.org_id)

        logger.info("Template created", template_id=template.id, type=template.type.value)
        return template

    async def promote_workflow(self, user: User, data: TemplatePromote) -> WorkflowTemplate:
        """Save a workflow of the organization as a user template."""
        workflow = await WorkflowService(self.db).get_workflow(data.workflow_id, user)
        return await self.create_template(
            TemplateCreate(
                name=data.name,
                description=data.description if data.description is not None else workflow.description,
                category=data.category,
                type=TemplateType.USER,
                config=copy.deepcopy(workflow.config),
                thumbnail_url=data.thumbnail_url,
            ),
            user,
        )

    # Installation

    async def install_template(
        self, template_id: int, user: User, tenant_id: int, data: TemplateInstall
    ) -> Workflow:
        """Create a workflow from a template in the given tenant."""
        template = await self.get_template(template_id, user)

        missing = [name for name in template.input_variables if name not in data.variables]
        if data.variables and missing:
            raise ValidationError(f"Missing template variables: {', '.join(missing)}")

        config = copy.deepcopy(template.config)
        if data.variables:
            config = render_in(config, data.variables)

        workflow = Workflow(
            name=data.name or f"{template.name} (Copy)",
            description=template.description,
            config=config,
            tags=[],
            status=WorkflowStatus.DRAFT,
            is_active=False,
            user_id=user.id,
            org_id=user.org_id,
            tenant_id=tenant_id,
            template_id=template.id,
        )
        self.db.add(workflow)
        await self.db.flush()

        self.db.add(
            WorkflowInstance(
                template_id=template.id,
                workflow_id=workflow.id,
                user_id=user.id,
                org_id=user.org_id,
                tenant_id=tenant_id,
                variables=data.variables,
            )
        )
        await self.db.execute(
            update(WorkflowTemplate)
            .where(WorkflowTemplate.id == template.id)
            .values(install_count=WorkflowTemplate.install_count + 1)
        )
        await self.db.commit()
        await self.invalidate_cache(template.org_id)

        logger.info(
            "Template installed",
            template_id=template.id,
            workflow_id=workflow.id,
            tenant_id=tenant_id,
        )
        return workflow

    async def list_instances(self, user: User) -> List[WorkflowInstance]:
        """Instances installed in the user's organization."""
        result = await self.db.execute(
            select(WorkflowInstance)
            .where(WorkflowInstance.org_id == user.org_id)
            .order_by(WorkflowInstance.installed_at.desc(), WorkflowInstance.id.desc())
        )
        return list(result.scalars().all())
