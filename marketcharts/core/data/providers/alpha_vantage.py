"""
Alpha Vantage data provider implementation.

Primary upstream for daily index prices. One symbol per request, full
output size, filtered locally to the requested window.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import ValidationError

from marketcharts.core.config import AlphaVantageConfig
from marketcharts.core.data.providers.base import Clock, PriceProvider
from marketcharts.core.data.providers.http import HttpClient, HttpConfig
from marketcharts.core.exceptions import ParseError, UpstreamError
from marketcharts.core.models import PricePoint

TIME_SERIES_KEY = "Time Series (Daily)"
ERROR_MARKERS = ("Error Message", "Note", "Information")
PROBE_SYMBOL = "^GSPC"


class AlphaVantageProvider(PriceProvider):
    """Alpha Vantage daily time series provider."""

    SERVICE_NAME = "Alpha Vantage"

    def __init__(
        self,
        config: AlphaVantageConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or AlphaVantageConfig()
        http_client = HttpClient(
            HttpConfig(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                user_agent="marketcharts-alpha-vantage/1.0.0",
            ),
            provider_name=self.SERVICE_NAME,
            transport=transport,
        )
        super().__init__(self.SERVICE_NAME, self.config.daily_limit, http_client, clock)

    async def _request_history(self, symbol: str, start: date, end: date) -> Any:
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "full",
            "apikey": self.config.api_key,
        }
        return await self._http.get_json("/query", params=params)

    def _parse_history(self, payload: Any, symbol: str) -> list[PricePoint]:
        if not isinstance(payload, dict):
            raise ParseError("Alpha Vantage payload is not a JSON object", provider_name=self.service_name)

        for marker in ERROR_MARKERS:
            if payload.get(marker):
                raise UpstreamError(
                    f"Alpha Vantage API error: {payload[marker]}",
                    provider_name=self.service_name,
                    upstream_code=marker,
                )

        time_series = payload.get(TIME_SERIES_KEY)
        if not isinstance(time_series, dict):
            raise ParseError(
                f"Alpha Vantage payload missing '{TIME_SERIES_KEY}'",
                provider_name=self.service_name,
                details={"keys": sorted(payload)},
            )

        points: list[PricePoint] = []
        for date_str, values in time_series.items():
            try:
                day = datetime.strptime(date_str, "%Y-%m-%d").date()
                point = self._build_point(
                    symbol,
                    day,
                    Decimal(values["1. open"]),
                    Decimal(values["2. high"]),
                    Decimal(values["3. low"]),
                    Decimal(values["4. close"]),
                    int(values["5. volume"]),
                )
            except (KeyError, TypeError, ValueError, InvalidOperation, ValidationError) as exc:
                raise ParseError(
                    f"Malformed Alpha Vantage row for {date_str}",
                    provider_name=self.service_name,
                    details={"date": date_str, "error_type": type(exc).__name__},
                ) from exc
            points.append(point)
        return points

    async def _probe(self) -> bool:
        params = {"function": "GLOBAL_QUOTE", "symbol": PROBE_SYMBOL, "apikey": self.config.api_key}
        response = await self._http.get("/query", params=params)
        return response.is_success


__all__ = ["AlphaVantageProvider"]
