"""Export templates seeded into every installation."""

from typing import Any, Dict, List

DEFAULT_EXPORT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "key": "workflow-success-failure-audit",
        "name": "Workflow Success/Failure Audit",
        "description": "Detailed audit of workflow execution success and failure patterns",
        "category": "operations",
        "type": "analytics",
        "format": "xlsx",
        "tags": ["operations", "audit", "performance"],
        "definition": {
            "fields": [
                "workflow_id",
                "workflow_name",
                "execution_count",
                "success_count",
                "failure_count",
                "average_duration",
                "last_execution",
            ],
            "computed_fields": [
                {
                    "name": "success_rate",
                    "expression": "success_count / execution_count * 100",
                    "description": "Percentage of successful executions",
                    "type": "number",
                },
                {
                    "name": "failure_rate",
                    "expression": "failure_count / execution_count * 100",
                    "description": "Percentage of failed executions",
                    "type": "number",
                },
            ],
            "filters": {
                "date_range": {"required": True, "default": "last30days"},
            },
            "options": {
                "group_by": "workflow",
                "sort_by": "failure_count",
                "sort_order": "desc",
            },
        },
    },
    {
        "key": "monthly-execution-cost-summary",
        "name": "Monthly Execution vs Plan Cost Summary",
        "description": "Cost analysis of workflow executions against plan limits",
        "category": "finance",
        "type": "billing",
        "format": "xlsx",
        "tags": ["finance", "cost", "billing"],
        "definition": {
            "fields": [
                "month",
                "plan_type",
                "execution_count",
                "base_cost",
                "plan_limit",
                "utilization_rate",
            ],
            "computed_fields": [
                {
                    "name": "cost_per_execution",
                    "expression": "base_cost / execution_count",
                    "description": "Average cost per execution",
                    "type": "number",
                },
            ],
            "filters": {
                "date_range": {"required": True, "default": "thisMonth"},
            },
            "options": {"group_by": "plan_type"},
        },
    },
]
