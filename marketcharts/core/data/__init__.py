"""Data access: upstream providers, storage and caching."""
