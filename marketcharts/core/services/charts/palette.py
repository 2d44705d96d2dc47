"""Chart colors."""

from __future__ import annotations

from collections.abc import Mapping

INDEX_COLORS: Mapping[str, str] = {
    "s&p 500": "#1f77b4",
    "dow jones": "#ff7f0e",
    "nasdaq": "#2ca02c",
    "russell 2000": "#d62728",
    "wilshire 5000": "#9467bd",
}
DEFAULT_INDEX_COLOR = "#8c564b"

COMPARISON_COLORS: Mapping[str, str] = {
    "#1f77b4": "#aec7e8",
    "#ff7f0e": "#ffbb78",
    "#2ca02c": "#98df8a",
    "#d62728": "#ff9896",
    "#9467bd": "#c5b0d5",
}
DEFAULT_COMPARISON_COLOR = "#c49c94"

INDICATOR_COLORS: Mapping[str, str] = {
    "SMA20": "#7f7f7f",
    "SMA50": "#bcbd22",
    "SMA200": "#17becf",
    "RSI": "#e377c2",
    "Volatility": "#ffbb78",
}
DEFAULT_INDICATOR_COLOR = "#7f7f7f"


def index_color(index_name: str, overrides: Mapping[str, str] | None = None) -> str:
    key = index_name.lower()
    if overrides and key in overrides:
        return overrides[key]
    return INDEX_COLORS.get(key, DEFAULT_INDEX_COLOR)


def comparison_color(color: str) -> str:
    return COMPARISON_COLORS.get(color.lower(), DEFAULT_COMPARISON_COLOR)


def indicator_color(indicator_name: str) -> str:
    return INDICATOR_COLORS.get(indicator_name, DEFAULT_INDICATOR_COLOR)


__all__ = [
    "COMPARISON_COLORS",
    "INDEX_COLORS",
    "INDICATOR_COLORS",
    "comparison_color",
    "index_color",
    "indicator_color",
]
