"""Organizations and tenants."""
