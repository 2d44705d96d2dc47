"""marketcharts客户端 - 组装完整的数据与图表管道"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from marketcharts.core.config import AppConfig, ConfigManager
from marketcharts.core.data.providers import AlphaVantageProvider, PriceProvider, StockDataOrgProvider
from marketcharts.core.data.repositories import DuckDBPriceRepository, PriceRepository
from marketcharts.core.exceptions import InvalidArgumentError
from marketcharts.core.logging import configure_logging, get_logger, log_context
from marketcharts.core.models import ChartData
from marketcharts.core.patterns import ProviderSelector
from marketcharts.core.services.charts import ChartDataProcessor
from marketcharts.core.services.consistency import ConsistencyReconciler
from marketcharts.core.services.stock_data import StockDataService

logger = get_logger(__name__)

PERIOD_TITLES = {
    "inauguration": "Market Performance Since Inauguration",
    "tariff": "Market Performance Since Tariff Announcement",
}


class MarketChartsClient:
    """marketcharts主客户端

    Args:
        config: 应用配置, 缺省时从配置文件和环境变量加载
        repository: 价格仓储, 缺省时按 ``config.database.path`` 打开DuckDB
        primary: 主数据源, 缺省为Alpha Vantage
        backup: 备用数据源, 缺省为StockData.org
        clock: 时间源

    Examples:
        >>> async with MarketChartsClient() as client:
        ...     chart = await client.get_chart("inauguration", indicators=["SMA"])
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        repository: PriceRepository | None = None,
        primary: PriceProvider | None = None,
        backup: PriceProvider | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or ConfigManager().get_config()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._apply_logging_config()

        self._owns_repository = repository is None
        self.repository = repository or self._open_repository(self.config.database.path)
        self.primary = primary or AlphaVantageProvider(self.config.api.primary, clock=self._clock)
        self.backup = backup or StockDataOrgProvider(self.config.api.backup, clock=self._clock)

        self.selector = ProviderSelector(self.primary, self.backup, self.config.api, clock=self._clock)
        self.reconciler = ConsistencyReconciler(
            self.repository, self.selector, api_config=self.config.api, clock=self._clock
        )
        self.processor = ChartDataProcessor(self.config.chart, calendar=self.reconciler.calendar)
        self.service = StockDataService(self.config, self.reconciler, self.processor, clock=self._clock)
        self._update_task: asyncio.Task[None] | None = None

        logger.info(
            "MarketChartsClient initialized",
            primary=self.primary.service_name,
            backup=self.backup.service_name,
            version=self.config.version,
        )

    def _apply_logging_config(self) -> None:
        """应用日志配置"""
        log_config = self.config.logging
        configure_logging(
            level=log_config.level,
            console_output=log_config.console,
            file_output=log_config.file is not None,
            file_path=log_config.file,
        )

    @staticmethod
    def _open_repository(path: str) -> DuckDBPriceRepository:
        if path == ":memory:":
            return DuckDBPriceRepository(path)
        db_path = Path(path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return DuckDBPriceRepository(str(db_path))

    def default_events(self) -> dict[date, str]:
        return {
            self.config.inauguration_date: "Inauguration",
            self.config.tariff_announcement_date: "Tariff Announcement",
        }

    async def get_chart(
        self,
        period: str,
        indicators: Sequence[str] = (),
        events: Mapping[date, str] | None = None,
        compare: bool = False,
    ) -> ChartData:
        """获取指定时期的图表数据

        Args:
            period: "inauguration" 或 "tariff"
            indicators: 技术指标名称, 如 "SMA", "RSI", "VOLATILITY"
            events: 日期到事件说明的映射, 缺省使用配置中的关键日期
            compare: 是否叠加上一届政府同期数据

        Returns:
            ChartData: 已补齐交易日并按配置降采样的图表数据
        """
        key = period.lower()
        if key == "inauguration":
            start = self.config.inauguration_date
        elif key == "tariff":
            start = self.config.tariff_announcement_date
        else:
            raise InvalidArgumentError(f"Unknown chart period: {period}", argument="period")
        end = self._clock().date()

        with log_context(period=key):
            data = await self.service.get_period_data(start, end)
            chart = self.processor.format_data_for_chart(data, PERIOD_TITLES[key], start, end)
            chart = self.processor.handle_missing_dates(chart, start, end)

            if compare and self.config.enable_comparison:
                previous = await self.service.get_previous_administration_data()
                chart = self.processor.generate_comparison_data(chart, previous, start, end)

            if indicators and self.config.enable_technical_indicators:
                chart = self.processor.apply_technical_indicators(chart, indicators)

            if self.config.chart.show_annotations:
                chart = self.processor.generate_annotations(
                    chart, self.default_events() if events is None else events
                )

            if self.config.chart.optimize_data_points:
                chart = self.processor.optimize_data_points(chart, self.config.chart.max_data_points)

            logger.info("Chart ready", labels=len(chart.labels), series=len(chart.series))
            return chart

    def start_daily_updates(self) -> asyncio.Task[None]:
        """启动每日更新任务, 重复调用返回同一个任务"""
        if self._update_task is None or self._update_task.done():
            self._update_task = self.service.schedule_daily_updates()
        return self._update_task

    async def stop_daily_updates(self) -> None:
        task, self._update_task = self._update_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        await self.stop_daily_updates()
        await self.primary.close()
        await self.backup.close()
        if self._owns_repository and isinstance(self.repository, DuckDBPriceRepository):
            self.repository.close()

    async def __aenter__(self) -> MarketChartsClient:
        if self.config.enable_daily_updates:
            self.start_daily_updates()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


__all__ = ["MarketChartsClient", "PERIOD_TITLES"]
