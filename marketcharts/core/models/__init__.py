"""Data models for price records and chart structures."""

from marketcharts.core.models.chart import (
    EVENT_ANNOTATION,
    NORMALIZED_DATA_TYPE,
    PRICE_DATA_TYPE,
    ChartAnnotation,
    ChartData,
    ChartSeries,
    TechnicalIndicator,
)
from marketcharts.core.models.market import PricePoint, SeriesRecordSet

__all__ = [
    "PricePoint",
    "SeriesRecordSet",
    "ChartSeries",
    "ChartData",
    "TechnicalIndicator",
    "ChartAnnotation",
    "PRICE_DATA_TYPE",
    "NORMALIZED_DATA_TYPE",
    "EVENT_ANNOTATION",
]
