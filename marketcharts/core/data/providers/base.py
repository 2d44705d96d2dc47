"""数据提供商抽象基类."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any

from marketcharts.core.data.providers.http import HttpClient
from marketcharts.core.exceptions import (
    InsufficientDataError,
    InvalidArgumentError,
    ProviderError,
    QuotaExceededError,
)
from marketcharts.core.logging import get_logger
from marketcharts.core.models import PricePoint

logger = get_logger(__name__)

Clock = Callable[[], datetime]

DEFAULT_INDEX_NAMES: Mapping[str, str] = {
    "^GSPC": "S&P 500",
    "^DJI": "Dow Jones",
    "^IXIC": "NASDAQ",
}

LATEST_LOOKBACK = timedelta(days=7)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PriceProvider(ABC):
    """上游行情数据源的统一接口.

    子类只负责请求与解析; 配额扣减、区间过滤、排序与日志在此统一处理.
    """

    index_names: Mapping[str, str] = DEFAULT_INDEX_NAMES

    def __init__(
        self,
        service_name: str,
        api_call_limit: int,
        http_client: HttpClient,
        clock: Clock | None = None,
    ) -> None:
        """初始化数据提供商.

        Args:
            service_name: 提供商名称
            api_call_limit: 每日调用上限
            http_client: HTTP客户端
            clock: 时间源, 测试中可替换
        """
        if api_call_limit < 0:
            raise InvalidArgumentError("api_call_limit must be non-negative", argument="api_call_limit")
        self._service_name = service_name
        self._api_call_limit = api_call_limit
        self._remaining_calls = api_call_limit
        self._quota_lock = asyncio.Lock()
        self._http = http_client
        self._clock = clock or _utc_now

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def api_call_limit(self) -> int:
        return self._api_call_limit

    def get_remaining_calls(self) -> int:
        """返回剩余可用调用次数."""
        return self._remaining_calls

    def reset_quota(self) -> None:
        """恢复到每日调用上限."""
        self._remaining_calls = self._api_call_limit

    def resolve_index_name(self, symbol: str) -> str:
        """将提供商代码映射为标准指数名称, 未知代码原样返回."""
        return self.index_names.get(symbol, symbol)

    async def _consume_call(self, symbol: str, operation: str) -> None:
        async with self._quota_lock:
            if self._remaining_calls <= 0:
                logger.warning(
                    "API call limit reached",
                    provider=self.service_name,
                    symbol=symbol,
                    operation=operation,
                    limit=self._api_call_limit,
                )
                raise QuotaExceededError(
                    f"API call limit reached for {self.service_name}",
                    provider_name=self.service_name,
                    limit=self._api_call_limit,
                )
            self._remaining_calls -= 1

    async def get_historical_data(self, symbol: str, start: date, end: date) -> list[PricePoint]:
        """获取 [start, end] 区间内的日线数据, 按日期升序返回."""
        if end < start:
            raise InvalidArgumentError("end must be on or after start", argument="end")

        await self._consume_call(symbol, "get_historical_data")
        try:
            payload = await self._request_history(symbol, start, end)
            points = self._parse_history(payload, symbol)
        except ProviderError as exc:
            logger.error(
                "Historical data request failed",
                provider=self.service_name,
                symbol=symbol,
                operation="get_historical_data",
                error_code=exc.error_code,
                error=exc.message,
            )
            raise

        in_range = [point for point in points if start <= point.date <= end]
        in_range.sort(key=lambda point: point.date)
        logger.debug(
            "Fetched historical data",
            provider=self.service_name,
            symbol=symbol,
            count=len(in_range),
        )
        return in_range

    async def get_latest_data(self, symbol: str) -> PricePoint:
        """获取最近一周内最新的一条数据."""
        end = self._clock().date()
        points = await self.get_historical_data(symbol, end - LATEST_LOOKBACK, end)
        if not points:
            logger.warning(
                "No recent data available",
                provider=self.service_name,
                symbol=symbol,
                operation="get_latest_data",
            )
            raise InsufficientDataError(
                f"No data available for {symbol}",
                details={"provider": self.service_name, "symbol": symbol},
            )
        return points[-1]

    async def is_available(self) -> bool:
        """轻量探测上游是否可用, 不消耗配额, 任何异常都返回False."""
        try:
            return await self._probe()
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Availability probe failed",
                provider=self.service_name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> PriceProvider:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _build_point(
        self,
        symbol: str,
        day: date,
        open_: Any,
        high: Any,
        low: Any,
        close: Any,
        volume: Any,
    ) -> PricePoint:
        return PricePoint(
            index_name=self.resolve_index_name(symbol),
            date=day,
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=volume,
            fetched_at=self._clock(),
        )

    @abstractmethod
    async def _request_history(self, symbol: str, start: date, end: date) -> Any:
        """请求原始历史数据载荷."""

    @abstractmethod
    def _parse_history(self, payload: Any, symbol: str) -> list[PricePoint]:
        """解析载荷, 遇到错误标记抛出UpstreamError, 结构异常抛出ParseError."""

    @abstractmethod
    async def _probe(self) -> bool:
        """执行可用性探测."""


__all__ = ["Clock", "DEFAULT_INDEX_NAMES", "LATEST_LOOKBACK", "PriceProvider"]
