"""Export templates and export jobs."""
