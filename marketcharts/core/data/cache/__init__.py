"""In-process caching."""

from marketcharts.core.data.cache.memory import TTLCache

__all__ = ["TTLCache"]
