"""Workflow templates and installed instances."""
