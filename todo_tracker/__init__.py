"""Todo Tracker: multi-tenant todo service (filters, batch operations, statistics)."""
