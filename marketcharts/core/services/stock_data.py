"""股票指数数据服务

Period presets, latest-price refresh with caching, gap filling and the daily
update schedule, on top of the consistency reconciler.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from marketcharts.core.config import AppConfig
from marketcharts.core.data.cache import TTLCache
from marketcharts.core.data.providers.base import DEFAULT_INDEX_NAMES
from marketcharts.core.exceptions import MarketChartsError
from marketcharts.core.logging import get_logger, log_context
from marketcharts.core.models import PricePoint, SeriesRecordSet
from marketcharts.core.services.calendars import USMarketCalendar
from marketcharts.core.services.charts import ChartDataProcessor
from marketcharts.core.services.consistency import ConsistencyReconciler

logger = get_logger(__name__)

LATEST_CACHE_KEY = "latest_data_all_indices"


class StockDataService:
    """指数数据服务.

    Args:
        config: 应用配置
        reconciler: 负责抓取、合并和校验的对账器
        processor: 图表处理器, 默认按 ``config.chart`` 创建
        cache: 最新数据缓存, 默认按 ``config.cache`` 创建
        clock: 时间源
        sleep: 调度等待函数, 测试中可替换
    """

    def __init__(
        self,
        config: AppConfig,
        reconciler: ConsistencyReconciler,
        processor: ChartDataProcessor | None = None,
        cache: TTLCache | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.config = config
        self.reconciler = reconciler
        self.processor = processor or ChartDataProcessor(config.chart, calendar=reconciler.calendar)
        self._clock = clock or (lambda: datetime.now(UTC))
        if cache is None and config.cache.enabled:
            cache = TTLCache(max_size=config.cache.max_size, clock=self._clock)
        self.cache = cache
        self._sleep = sleep or asyncio.sleep
        self._last_update_time: datetime | None = None

    @property
    def calendar(self) -> USMarketCalendar:
        return self.reconciler.calendar

    def index_name_for(self, symbol: str) -> str:
        return DEFAULT_INDEX_NAMES.get(symbol, symbol)

    def today(self) -> date:
        return self._clock().date()

    # ------------------------------------------------------------------
    # period presets
    # ------------------------------------------------------------------

    async def get_inauguration_to_present(self) -> SeriesRecordSet:
        return await self.get_period_data(self.config.inauguration_date, self.today())

    async def get_tariff_announcement_to_present(self) -> SeriesRecordSet:
        return await self.get_period_data(self.config.tariff_announcement_date, self.today())

    async def get_previous_administration_data(self) -> SeriesRecordSet:
        return await self.get_period_data(
            self.config.previous_administration_start,
            self.config.previous_administration_end,
        )

    async def get_period_data(self, start: date, end: date) -> SeriesRecordSet:
        """Fetch and merge every configured index for ``[start, end]`` concurrently."""
        symbols = list(self.config.index_symbols)
        with log_context(start=start.isoformat(), end=end.isoformat()):
            results = await asyncio.gather(
                *(self.reconciler.fetch_and_merge(symbol, start, end) for symbol in symbols)
            )
        return {self.index_name_for(symbol): points for symbol, points in zip(symbols, results)}

    # ------------------------------------------------------------------
    # latest data
    # ------------------------------------------------------------------

    async def get_latest_data_for_all_indices(self) -> dict[str, PricePoint]:
        """最新价格, 命中缓存时不访问上游."""
        if self.cache is not None:
            cached = await self.cache.get(LATEST_CACHE_KEY)
            if cached is not None:
                logger.debug("Latest data served from cache")
                return dict(cached)

        symbols = list(self.config.index_symbols)
        points = await asyncio.gather(*(self.reconciler.fetch_latest(symbol) for symbol in symbols))
        latest = {self.index_name_for(symbol): point for symbol, point in zip(symbols, points)}

        if self.cache is not None:
            await self.cache.set(LATEST_CACHE_KEY, latest, ttl=self.config.cache.ttl_latest_seconds)
        return dict(latest)

    async def check_and_update_data(self) -> bool:
        """Fetch today's record for every index that does not have one yet.

        Returns True when at least one index was fetched.
        """
        today = self.today()
        if self.are_markets_closed(today):
            logger.info("Markets closed, skipping update", date=today)
            return False

        updated = False
        for symbol in self.config.index_symbols:
            index_name = self.index_name_for(symbol)
            if not await self.reconciler.should_fetch_for_date(index_name, today):
                logger.debug("Data already current", index_name=index_name, date=today)
                continue
            await self.reconciler.fetch_and_merge(symbol, today, today)
            updated = True

        self._last_update_time = self._clock()
        if self.cache is not None and updated:
            await self.cache.delete(LATEST_CACHE_KEY)
        logger.info("Data update check completed", updated=updated)
        return updated

    async def initialize(self) -> None:
        """Load the inauguration-to-present history for empty indices, then refresh."""
        missing = [
            symbol
            for symbol in self.config.index_symbols
            if await self.reconciler.repository.get_latest(self.index_name_for(symbol)) is None
        ]
        if missing:
            logger.info("Loading initial history", symbols=missing)
            await asyncio.gather(
                *(
                    self.reconciler.fetch_and_merge(symbol, self.config.inauguration_date, self.today())
                    for symbol in missing
                )
            )
        await self.check_and_update_data()

    def get_last_update_time(self) -> datetime | None:
        return self._last_update_time

    # ------------------------------------------------------------------
    # gaps / validation
    # ------------------------------------------------------------------

    def fill_data_gaps(self, points: Sequence[PricePoint]) -> list[PricePoint]:
        """Insert copies of the previous record for trading days missing between records."""
        by_index: dict[str, list[PricePoint]] = {}
        for point in points:
            by_index.setdefault(point.index_name, []).append(point)

        filled: list[PricePoint] = []
        for index_name, series in by_index.items():
            ordered = sorted(series, key=lambda p: p.date)
            for previous, current in zip(ordered, ordered[1:]):
                filled.append(previous)
                gap_start = previous.date + timedelta(days=1)
                gap_end = current.date - timedelta(days=1)
                if gap_end < gap_start:
                    continue
                for day in self.calendar.trading_days(gap_start, gap_end):
                    logger.debug("Filling data gap", index_name=index_name, date=day)
                    filled.append(previous.model_copy(update={"id": None, "date": day}))
            filled.append(ordered[-1])
        return filled

    def verify_data_consistency(self, points: Sequence[PricePoint]) -> bool:
        return self.reconciler.verify_data_consistency(points)

    def are_markets_closed(self, day: date | datetime) -> bool:
        return self.calendar.is_market_closed(day)

    # ------------------------------------------------------------------
    # scheduling
    # ------------------------------------------------------------------

    def seconds_until(self, update_time: time) -> float:
        """Seconds until the next ``update_time`` on the wall clock of ``config.daily_update_timezone``."""
        now = self._clock().astimezone(UTC)
        local = now.astimezone(ZoneInfo(self.config.daily_update_timezone))
        target = datetime.combine(local.date(), update_time, tzinfo=local.tzinfo)
        if target <= local:
            target = datetime.combine(local.date() + timedelta(days=1), update_time, tzinfo=local.tzinfo)
        # subtract in UTC so a DST switch overnight is counted
        return (target.astimezone(UTC) - now).total_seconds()

    def schedule_daily_updates(self, update_time: time | None = None) -> asyncio.Task[None]:
        """Run ``check_and_update_data`` every day at ``update_time`` until cancelled."""
        run_at = update_time or self.config.daily_update_time

        async def _loop() -> None:
            while True:
                delay = self.seconds_until(run_at)
                logger.info("Next data update scheduled", run_at=run_at.strftime("%H:%M"), delay_seconds=delay)
                await self._sleep(delay)
                try:
                    await self.check_and_update_data()
                except MarketChartsError as e:
                    logger.error("Scheduled update failed", error_code=e.error_code, error=e.message)

        return asyncio.get_running_loop().create_task(_loop(), name="marketcharts-daily-update")


__all__ = ["LATEST_CACHE_KEY", "StockDataService"]
