"""Price storage collaborators."""

from marketcharts.core.data.repositories.base import PriceRepository
from marketcharts.core.data.repositories.duckdb import DuckDBPriceRepository

__all__ = ["DuckDBPriceRepository", "PriceRepository"]
