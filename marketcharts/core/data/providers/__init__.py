"""Upstream price providers."""

from marketcharts.core.data.providers.alpha_vantage import AlphaVantageProvider
from marketcharts.core.data.providers.base import DEFAULT_INDEX_NAMES, Clock, PriceProvider
from marketcharts.core.data.providers.http import HttpClient, HttpConfig
from marketcharts.core.data.providers.stockdata_org import StockDataOrgProvider

__all__ = [
    "AlphaVantageProvider",
    "Clock",
    "DEFAULT_INDEX_NAMES",
    "HttpClient",
    "HttpConfig",
    "PriceProvider",
    "StockDataOrgProvider",
]
