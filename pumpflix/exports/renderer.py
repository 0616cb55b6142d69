"""Render export definitions over an organization's execution logs."""

import csv
import io
import json
from collections import OrderedDict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.billing.models import ENTITLED_STATUSES, Subscription
from pumpflix.db_types import as_utc, utcnow
from pumpflix.exports.expressions import SafeExpression
from pumpflix.exports.models import ExportFormat, ExportType
from pumpflix.exports.schemas import (
    CustomFilter,
    DateRangePreset,
    ExportDefinition,
    FilterOperator,
)
from pumpflix.executions.models import ExecutionLog, ExecutionStatus
from pumpflix.workflows.models import Workflow

logger = structlog.get_logger()


def resolve_date_range(
    preset: Optional[DateRangePreset], now: Optional[datetime] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Start and end of a relative date range."""
    now = now or utcnow()
    if preset is None or preset == DateRangePreset.CUSTOM:
        return None, None
    if preset == DateRangePreset.LAST_7_DAYS:
        return now - timedelta(days=7), now
    if preset == DateRangePreset.LAST_30_DAYS:
        return now - timedelta(days=30), now
    if preset == DateRangePreset.LAST_90_DAYS:
        return now - timedelta(days=90), now

    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if preset == DateRangePreset.THIS_MONTH:
        return month_start, now
    if preset == DateRangePreset.LAST_MONTH:
        previous = (month_start - timedelta(days=1)).replace(day=1)
        return previous, month_start
    return month_start.replace(month=1), now


def _matches(row: Dict[str, Any], rule: CustomFilter) -> bool:
    value = row.get(rule.field)
    try:
        if rule.operator == FilterOperator.EQUALS:
            return value == rule.value
        if rule.operator == FilterOperator.CONTAINS:
            return value is not None and str(rule.value).lower() in str(value).lower()
        if rule.operator == FilterOperator.GT:
            return value is not None and value > rule.value
        if rule.operator == FilterOperator.LT:
            return value is not None and value < rule.value
        if rule.operator == FilterOperator.BETWEEN:
            return value is not None and rule.value <= value <= rule.value2
        if rule.operator == FilterOperator.IN:
            return value in rule.value
    except TypeError:
        return False
    return False


def _format_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def serialize_rows(rows: List[Dict[str, Any]], columns: List[str], fmt: ExportFormat) -> str:
    """Serialize rows as JSON or CSV. Spreadsheet and PDF formats are written as CSV."""
    if fmt == ExportFormat.JSON:
        return json.dumps(rows, default=str)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if row.get(key) is None else row[key] for key in columns})
    return buffer.getvalue()


class ExportRenderer:
    """Build export rows for one organization."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _executions(
        self,
        org_id: int,
        start: Optional[datetime],
        end: Optional[datetime],
        statuses: Optional[List[str]],
    ) -> List[Tuple[ExecutionLog, str]]:
        query = (
            select(ExecutionLog, Workflow.name)
            .join(Workflow, Workflow.id == ExecutionLog.workflow_id)
            .where(ExecutionLog.org_id == org_id)
        )
        if start:
            query = query.where(ExecutionLog.started_at >= start)
        if end:
            query = query.where(ExecutionLog.started_at <= end)
        if statuses:
            query = query.where(ExecutionLog.status.in_([ExecutionStatus(s) for s in statuses]))

        result = await self.db.execute(query.order_by(ExecutionLog.started_at, ExecutionLog.id))
        return [(execution, name) for execution, name in result.all()]

    def _execution_rows(self, executions: List[Tuple[ExecutionLog, str]]) -> List[Dict[str, Any]]:
        return [
            {
                "execution_id": execution.id,
                "workflow_id": execution.workflow_id,
                "workflow_name": name,
                "user_id": execution.user_id,
                "status": execution.status.value,
                "started_at": execution.started_at,
                "finished_at": execution.finished_at,
                "duration_ms": execution.duration_ms,
                "error": execution.error,
            }
            for execution, name in executions
        ]

    def _workflow_rows(self, executions: List[Tuple[ExecutionLog, str]]) -> List[Dict[str, Any]]:
        grouped: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
        for execution, name in executions:
            row = grouped.setdefault(
                execution.workflow_id,
                {
                    "workflow_id": execution.workflow_id,
                    "workflow_name": name,
                    "execution_count": 0,
                    "success_count": 0,
                    "failure_count": 0,
                    "average_duration": None,
                    "last_execution": None,
                    "_durations": [],
                },
            )
            row["execution_count"] += 1
            if execution.status == ExecutionStatus.SUCCESS:
                row["success_count"] += 1
            elif execution.status == ExecutionStatus.FAILED:
                row["failure_count"] += 1
            if execution.duration_ms is not None:
                row["_durations"].append(execution.duration_ms)
            if row["last_execution"] is None or execution.started_at > row["last_execution"]:
                row["last_execution"] = execution.started_at

        rows = []
        for row in grouped.values():
            durations = row.pop("_durations")
            if durations:
                row["average_duration"] = sum(durations) / len(durations)
            rows.append(row)
        return rows

    async def _billing_rows(
        self, org_id: int, executions: List[Tuple[ExecutionLog, str]]
    ) -> List[Dict[str, Any]]:
        subscription = await self.db.scalar(
            select(Subscription)
            .where(Subscription.org_id == org_id, Subscription.status.in_(ENTITLED_STATUSES))
            .order_by(Subscription.started_at.desc())
            .limit(1)
        )
        plan = subscription.plan if subscription else None

        counts: "OrderedDict[str, int]" = OrderedDict()
        for execution, _ in executions:
            month = as_utc(execution.started_at).strftime("%Y-%m")
            counts[month] = counts.get(month, 0) + 1

        rows = []
        for month, count in counts.items():
            limit = plan.execution_limit if plan else None
            rows.append(
                {
                    "month": month,
                    "plan_type": plan.name if plan else None,
                    "execution_count": count,
                    "base_cost": float(plan.monthly_price) if plan else None,
                    "plan_limit": limit,
                    "utilization_rate": round(count / limit * 100, 2) if limit else None,
                }
            )
        return rows

    async def build_rows(
        self,
        export_type: ExportType,
        definition: Dict[str, Any],
        org_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[str], List[Dict[str, Any]]]:
        """Columns and rows of an export, restricted to the definition's fields."""
        parsed = ExportDefinition.model_validate(definition)
        filters = parsed.filters

        start, end = start_date, end_date
        if start is None and end is None and filters and filters.date_range:
            date_range = filters.date_range
            if date_range.default == DateRangePreset.CUSTOM and date_range.custom:
                start, end = date_range.custom.from_, date_range.custom.to
            else:
                start, end = resolve_date_range(date_range.default)

        statuses = filters.status if filters else None
        executions = await self._executions(org_id, start, end, statuses)

        if export_type == ExportType.ANALYTICS:
            rows = self._workflow_rows(executions)
        elif export_type == ExportType.BILLING:
            rows = await self._billing_rows(org_id, executions)
        else:
            rows = self._execution_rows(executions)

        for field in parsed.computed_fields:
            expression = SafeExpression(field.expression)
            for row in rows:
                row[field.name] = expression.evaluate(row)

        if filters:
            for rule in filters.custom_filters:
                rows = [row for row in rows if _matches(row, rule)]

        sort_by = parsed.options.get("sort_by")
        if sort_by:
            reverse = parsed.options.get("sort_order") == "desc"
            rows.sort(key=lambda row: (row.get(sort_by) is None, row.get(sort_by) or 0), reverse=reverse)

        max_rows = parsed.options.get("max_rows")
        if isinstance(max_rows, int) and max_rows > 0:
            rows = rows[:max_rows]

        columns = list(parsed.fields) + [
            field.name for field in parsed.computed_fields if field.name not in parsed.fields
        ]
        return columns, [
            {column: _format_value(row.get(column)) for column in columns} for row in rows
        ]

    async def render(
        self,
        export_type: ExportType,
        definition: Dict[str, Any],
        org_id: int,
        fmt: ExportFormat,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[str, int]:
        """Rendered export and its row count."""
        columns, rows = await self.build_rows(export_type, definition, org_id, start_date, end_date)
        if fmt in (ExportFormat.XLSX, ExportFormat.PDF):
            logger.info("Export format written as CSV", format=fmt.value)

        return serialize_rows(rows, columns, fmt), len(rows)
