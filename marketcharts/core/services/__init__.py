"""Domain services: market calendar, reconciliation, chart transformation."""

from marketcharts.core.services.calendars import USMarketCalendar, default_calendar, is_market_closed
from marketcharts.core.services.charts import ChartDataProcessor, Trend
from marketcharts.core.services.consistency import (
    ConsistencyReconciler,
    ConsistencyReport,
    ConsistencyThresholds,
)
from marketcharts.core.services.stock_data import StockDataService

__all__ = [
    "ChartDataProcessor",
    "ConsistencyReconciler",
    "ConsistencyReport",
    "ConsistencyThresholds",
    "StockDataService",
    "Trend",
    "USMarketCalendar",
    "default_calendar",
    "is_market_closed",
]
