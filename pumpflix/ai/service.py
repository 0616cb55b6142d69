"""Prompt template service."""

from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.ai.models import PromptTemplate
from pumpflix.ai.schemas import PromptCreate, PromptUpdate, RenderedPrompt
from pumpflix.auth.models import User
from pumpflix.exceptions import NotFoundError, ValidationError
from pumpflix.placeholders import find_placeholders, missing_variables, render

logger = structlog.get_logger()


class PromptNotFoundError(NotFoundError):
    """Raised when a prompt template is missing."""
    error = "Prompt not found"


class PromptService:
    """CRUD and rendering of prompt templates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_prompt(self, user: User, data: PromptCreate) -> PromptTemplate:
        """Create a prompt template."""
        prompt = PromptTemplate(
            name=data.name,
            description=data.description,
            template=data.template,
            variables=data.variables if data.variables is not None else find_placeholders(data.template),
            category=data.category,
            meta=data.metadata,
            created_by=user.id,
            org_id=user.org_id,
        )
        self.db.add(prompt)
        await self.db.commit()

        logger.info("Prompt template created", prompt_id=prompt.id, org_id=user.org_id)
        return prompt

    async def list_prompts(
        self, user: User, category: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> Tuple[List[PromptTemplate], int]:
        """Prompt templates of the organization, newest first."""
        query = select(PromptTemplate).where(PromptTemplate.org_id == user.org_id)
        if category:
            query = query.where(PromptTemplate.category == category)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(PromptTemplate.created_at.desc(), PromptTemplate.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_prompt(self, prompt_id: int, user: User) -> PromptTemplate:
        """Get a prompt template of the organization."""
        prompt = await self.db.get(PromptTemplate, prompt_id)
        if not prompt or prompt.org_id != user.org_id:
            raise PromptNotFoundError()
        return prompt

    async def update_prompt(self, prompt_id: int, user: User, data: PromptUpdate) -> PromptTemplate:
        """Update a prompt template."""
        prompt = await self.get_prompt(prompt_id, user)

        update_data = data.model_dump(exclude_unset=True)
        metadata = update_data.pop("metadata", None)
        for field, value in update_data.items():
            if value is not None:
                setattr(prompt, field, value)
        if metadata is not None:
            prompt.meta = metadata

        # Re-detect variables when only the text changed
        if data.template is not None and data.variables is None:
            prompt.variables = find_placeholders(data.template)

        await self.db.commit()

        logger.info("Prompt template updated", prompt_id=prompt.id, fields=sorted(data.model_fields_set))
        return prompt

    async def delete_prompt(self, prompt_id: int, user: User) -> None:
        """Delete a prompt template."""
        prompt = await self.get_prompt(prompt_id, user)
        await self.db.delete(prompt)
        await self.db.commit()

        logger.info("Prompt template deleted", prompt_id=prompt_id)

    async def render_prompt(self, prompt_id: int, user: User, variables: dict) -> RenderedPrompt:
        """Substitute the variables of a prompt template."""
        prompt = await self.get_prompt(prompt_id, user)

        names = list(prompt.variables or [])
        for name in find_placeholders(prompt.template):
            if name not in names:
                names.append(name)

        missing = missing_variables(names, variables)
        if missing:
            raise ValidationError(f"Missing variables: {', '.join(missing)}", missing=missing)

        return RenderedPrompt(prompt=render(prompt.template, variables), variables=names)
