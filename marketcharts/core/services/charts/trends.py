"""Diagnostic trend labels for a price series."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from enum import Enum

from marketcharts.core.exceptions import InsufficientDataError


class Trend(str, Enum):
    """趋势标签."""

    STRONG_UPTREND = "Strong Uptrend"
    MILD_UPTREND = "Mild Uptrend"
    MILD_DOWNTREND = "Mild Downtrend"
    STRONG_DOWNTREND = "Strong Downtrend"
    RECENT_REVERSAL = "Recent Reversal"
    HIGH_VOLATILITY = "High Volatility"
    LOW_VOLATILITY = "Low Volatility"


STRONG_MOVE_PERCENT = Decimal(5)
REVERSAL_PERCENT = Decimal(2)
HIGH_VOLATILITY_PERCENT = Decimal("1.5")
LOW_VOLATILITY_PERCENT = Decimal("0.5")


def _change_percent(first: Decimal, last: Decimal) -> Decimal:
    if first == 0:
        return Decimal(0)
    return (last - first) / first * 100


def classify_trends(values: Sequence[Decimal]) -> list[Trend]:
    """Overall direction, optional reversal flag, optional volatility flag."""
    if len(values) < 2:
        raise InsufficientDataError("Data must contain at least two points", details={"count": len(values)})

    trends: list[Trend] = []
    overall = _change_percent(values[0], values[-1])
    if overall > STRONG_MOVE_PERCENT:
        trends.append(Trend.STRONG_UPTREND)
    elif overall > 0:
        trends.append(Trend.MILD_UPTREND)
    elif overall > -STRONG_MOVE_PERCENT:
        trends.append(Trend.MILD_DOWNTREND)
    else:
        trends.append(Trend.STRONG_DOWNTREND)

    recent_count = max(len(values) // 10, 2)
    recent = values[-recent_count:]
    recent_change = _change_percent(recent[0], recent[-1])
    if (overall > 0 and recent_change < -REVERSAL_PERCENT) or (overall < 0 and recent_change > REVERSAL_PERCENT):
        trends.append(Trend.RECENT_REVERSAL)

    day_changes = [abs(_change_percent(values[i - 1], values[i])) for i in range(1, len(values))]
    average_change = sum(day_changes, Decimal(0)) / len(day_changes)
    if average_change > HIGH_VOLATILITY_PERCENT:
        trends.append(Trend.HIGH_VOLATILITY)
    elif average_change < LOW_VOLATILITY_PERCENT:
        trends.append(Trend.LOW_VOLATILITY)

    return trends


__all__ = ["Trend", "classify_trends"]
