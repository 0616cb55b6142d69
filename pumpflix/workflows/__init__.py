"""Workflow management."""
