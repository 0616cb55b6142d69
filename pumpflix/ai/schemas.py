"""AI prompt and generation schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.workflows.schemas import WorkflowResponse


class PromptCreate(BaseModel):
    """Schema for creating a prompt template."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    template: str = Field(..., min_length=1, description="Prompt text with {{name}} placeholders")
    variables: Optional[List[str]] = Field(
        None, description="Declared variables, detected from the text when omitted"
    )
    category: Optional[str] = Field(None, max_length=100)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PromptUpdate(BaseModel):
    """Schema for updating a prompt template."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    template: Optional[str] = Field(None, min_length=1)
    variables: Optional[List[str]] = None
    category: Optional[str] = Field(None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None


class PromptResponse(BaseModel):
    """Prompt template response."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    description: Optional[str] = None
    template: str
    variables: List[str]
    category: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_by: int
    org_id: int
    created_at: datetime
    updated_at: datetime


class PromptListResponse(BaseModel):
    """Page of prompt templates."""
    items: List[PromptResponse]
    total: int
    page: int
    limit: int


class PromptRender(BaseModel):
    """Variables for rendering a prompt."""
    variables: Dict[str, Any] = Field(default_factory=dict)


class RenderedPrompt(BaseModel):
    """A rendered prompt."""
    prompt: str
    variables: List[str]


class GenerateRequest(BaseModel):
    """Natural-language description of a workflow."""
    prompt: str = Field(..., min_length=10, max_length=1000)
    save: bool = Field(default=False, description="Store the generated workflow as a draft")
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class GenerateResponse(BaseModel):
    """Generated workflow graph, and the stored workflow when saved."""
    workflow: Dict[str, Any]
    saved: Optional[WorkflowResponse] = None
