"""Export template schemas and definition validation."""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from pumpflix.exports.expressions import SafeExpression
from pumpflix.exports.models import (
    ExportCategory,
    ExportFormat,
    ExportJobStatus,
    ExportTemplateStatus,
    ExportType,
    TemplateVersionStatus,
)

SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)(-[\w]+)?$")


class FieldType(str, Enum):
    """Type of a computed field."""
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    BOOLEAN = "boolean"


class FilterOperator(str, Enum):
    """Operators available to custom filters."""
    EQUALS = "equals"
    CONTAINS = "contains"
    GT = "gt"
    LT = "lt"
    BETWEEN = "between"
    IN = "in"


class DateRangePreset(str, Enum):
    """Relative date ranges."""
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    LAST_90_DAYS = "last90days"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"
    CUSTOM = "custom"


class ScheduleFrequency(str, Enum):
    """How often a scheduled export runs."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ComputedField(BaseModel):
    """Column derived from other columns."""
    name: str = Field(..., min_length=1)
    expression: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: FieldType = FieldType.NUMBER

    @field_validator("expression")
    @classmethod
    def validate_expression(cls, v):
        SafeExpression(v)
        return v


class CustomFilter(BaseModel):
    """Row filter applied after computed fields."""
    field: str = Field(..., min_length=1)
    operator: FilterOperator
    value: Any = None
    value2: Any = None

    @model_validator(mode="after")
    def check_operands(self):
        if self.operator == FilterOperator.BETWEEN and self.value2 is None:
            raise ValueError("'between' requires value and value2")
        if self.operator == FilterOperator.IN and not isinstance(self.value, list):
            raise ValueError("'in' requires a list value")
        return self


class CustomRange(BaseModel):
    """Explicit date range."""
    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None


class DateRangeFilter(BaseModel):
    """Date range applied to execution start times."""
    required: bool = False
    default: Optional[DateRangePreset] = None
    custom: Optional[CustomRange] = None


class ExportFilters(BaseModel):
    """Filters of an export definition."""
    date_range: Optional[DateRangeFilter] = None
    custom_filters: List[CustomFilter] = Field(default_factory=list)
    status: Optional[List[str]] = None


class ExportSchedule(BaseModel):
    """Recurring run of an export."""
    frequency: ScheduleFrequency
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    timezone: str = "UTC"


class ExportDefinition(BaseModel):
    """Validated content of an export template version."""
    model_config = ConfigDict(extra="allow")

    fields: List[str] = Field(..., min_length=1)
    computed_fields: List[ComputedField] = Field(default_factory=list)
    filters: Optional[ExportFilters] = None
    schedule: Optional[ExportSchedule] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v):
        if any(not name or not name.strip() for name in v):
            raise ValueError("field names must not be empty")
        return v


def validate_definition(value: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a raw definition and return it unchanged."""
    ExportDefinition.model_validate(value)
    return value


class ExportTemplateCreate(BaseModel):
    """Schema for creating an export template with its first version."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: ExportCategory
    type: ExportType
    format: ExportFormat = ExportFormat.CSV
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    definition: Dict[str, Any] = Field(..., validation_alias=AliasChoices("schema", "definition"))
    version: str = Field(default="1.0.0", pattern=SEMVER_PATTERN.pattern)
    change_notes: str = Field(default="Initial version", min_length=1)

    @field_validator("definition")
    @classmethod
    def validate_schema(cls, v):
        return validate_definition(v)


class ExportTemplateResponse(BaseModel):
    """Export template response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    key: Optional[str] = None
    name: str
    description: Optional[str] = None
    category: ExportCategory
    type: ExportType
    format: ExportFormat
    tags: List[str]
    is_public: bool
    status: ExportTemplateStatus
    current_version: Optional[str] = None
    org_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class VersionCreate(BaseModel):
    """Schema for adding a version to a template."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(..., pattern=SEMVER_PATTERN.pattern)
    change_notes: str = Field(..., min_length=1)
    performance_notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: TemplateVersionStatus = TemplateVersionStatus.DRAFT
    definition: Dict[str, Any] = Field(..., validation_alias=AliasChoices("schema", "definition"))

    @field_validator("definition")
    @classmethod
    def validate_schema(cls, v):
        return validate_definition(v)


class VersionUpdate(BaseModel):
    """Schema for updating version metadata."""
    change_notes: Optional[str] = Field(None, min_length=1)
    performance_notes: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[TemplateVersionStatus] = None


class VersionResponse(BaseModel):
    """Export template version response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    version: str
    definition: Dict[str, Any] = Field(
        validation_alias=AliasChoices("definition", "schema"), serialization_alias="schema"
    )
    change_notes: str
    performance_notes: Optional[str] = None
    tags: List[str]
    status: TemplateVersionStatus
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class SchemaChanges(BaseModel):
    """Top-level key differences between two definitions."""
    added: List[str]
    removed: List[str]
    modified: List[Dict[str, Any]]


class VersionMetadataChanges(BaseModel):
    """Notes of the newer version."""
    change_notes: str
    performance_notes: Optional[str] = None
    tags: List[str]


class VersionChanges(BaseModel):
    """Schema and metadata changes."""
    schema_: SchemaChanges = Field(
        validation_alias=AliasChoices("schema_", "schema"), serialization_alias="schema"
    )
    metadata: VersionMetadataChanges


class VersionComparison(BaseModel):
    """Result of comparing two versions."""
    version1: str
    version2: str
    changes: VersionChanges


class ExportRunRequest(BaseModel):
    """Parameters of an export run."""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    version: Optional[str] = Field(None, pattern=SEMVER_PATTERN.pattern)


class ExportJobResponse(BaseModel):
    """Export job response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    version: Optional[str] = None
    status: ExportJobStatus
    format: ExportFormat
    params: Dict[str, Any]
    row_count: Optional[int] = None
    output: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
