"""Request-scoped tenant context and tenant-bound data access."""
