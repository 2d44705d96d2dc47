"""Chart series transformation."""

from marketcharts.core.services.charts.indicators import (
    annualized_volatility,
    percentage_change,
    relative_strength_index,
    simple_moving_average,
)
from marketcharts.core.services.charts.processor import ChartDataProcessor, format_label, parse_label
from marketcharts.core.services.charts.trends import Trend, classify_trends

__all__ = [
    "ChartDataProcessor",
    "Trend",
    "annualized_volatility",
    "classify_trends",
    "format_label",
    "parse_label",
    "percentage_change",
    "relative_strength_index",
    "simple_moving_average",
]
