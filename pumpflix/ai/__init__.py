"""AI prompt templates and workflow generation."""
