"""StockData.org end-of-day provider used as the failover backup."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import ValidationError

from marketcharts.core.config import StockDataOrgConfig
from marketcharts.core.data.providers.base import Clock, PriceProvider
from marketcharts.core.data.providers.http import HttpClient, HttpConfig
from marketcharts.core.exceptions import ParseError, UpstreamError
from marketcharts.core.models import PricePoint

PROBE_SYMBOL = "^GSPC"


class StockDataOrgProvider(PriceProvider):
    """StockData.org provider."""

    SERVICE_NAME = "StockData.org"

    def __init__(
        self,
        config: StockDataOrgConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or StockDataOrgConfig()
        http_client = HttpClient(
            HttpConfig(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                user_agent="marketcharts-stockdata/1.0.0",
            ),
            provider_name=self.SERVICE_NAME,
            transport=transport,
        )
        super().__init__(self.SERVICE_NAME, self.config.daily_limit, http_client, clock)

    async def _request_history(self, symbol: str, start: date, end: date) -> Any:
        params = {
            "symbols": symbol,
            "date_from": start.isoformat(),
            "date_to": end.isoformat(),
            "api_token": self.config.api_token,
        }
        return await self._http.get_json("/v1/data/eod", params=params)

    def _parse_history(self, payload: Any, symbol: str) -> list[PricePoint]:
        if not isinstance(payload, dict):
            raise ParseError("StockData.org payload is not a JSON object", provider_name=self.service_name)

        error = payload.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamError(
                f"StockData.org API error: {message}",
                provider_name=self.service_name,
                upstream_code=code,
            )

        rows = payload.get("data")
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise ParseError("StockData.org 'data' is not a list", provider_name=self.service_name)

        points: list[PricePoint] = []
        for row in rows:
            try:
                day = datetime.fromisoformat(str(row["date"])[:10]).date()
                point = self._build_point(
                    symbol,
                    day,
                    _decimal(row.get("open")),
                    _decimal(row.get("high")),
                    _decimal(row.get("low")),
                    _decimal(row.get("close")),
                    int(row.get("volume") or 0),
                )
            except (KeyError, TypeError, ValueError, InvalidOperation, ValidationError) as exc:
                raise ParseError(
                    "Malformed StockData.org row",
                    provider_name=self.service_name,
                    details={"row": str(row)[:200], "error_type": type(exc).__name__},
                ) from exc
            points.append(point)
        return points

    async def _probe(self) -> bool:
        params = {"symbols": PROBE_SYMBOL, "api_token": self.config.api_token}
        response = await self._http.get("/v1/data/quote", params=params)
        return response.is_success


def _decimal(value: Any) -> Decimal:
    if value is None:
        raise ValueError("missing price field")
    return Decimal(str(value))


__all__ = ["StockDataOrgProvider"]
