"""Workflow execution logs."""
