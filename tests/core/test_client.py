"""Tests for the MarketChartsClient facade."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from marketcharts import MarketChartsClient
from marketcharts.core.config import AppConfig
from marketcharts.core.exceptions import InvalidArgumentError


@pytest.fixture
def config() -> AppConfig:
    config = AppConfig(index_symbols=["^GSPC", "^IXIC"])
    config.database.path = ":memory:"
    config.logging.level = "WARNING"
    return config


@pytest.fixture
def client(config, repository, primary, backup, clock):
    clock.now = datetime(2025, 4, 11, 22, 0, tzinfo=UTC)
    return MarketChartsClient(config, repository=repository, primary=primary, backup=backup, clock=clock)


def _load_tariff_window(provider) -> None:
    # 2025-04-01 (Tue) through 2025-04-11 (Fri), trading days only
    provider.add_closes("^GSPC", date(2025, 4, 1), [5633, 5670, 5396, 5074, 5062, 4982, 5456, 5268, 5363], trading_days_only=True)
    provider.add_closes("^IXIC", date(2025, 4, 1), [17449, 17601, 16550, 15587, 15603, 15267, 17124, 16387, 16724], trading_days_only=True)


class TestMarketChartsClient:
    @pytest.mark.asyncio
    async def test_tariff_chart(self, client, primary):
        _load_tariff_window(primary)

        chart = await client.get_chart("tariff")

        assert chart.title == "Market Performance Since Tariff Announcement"
        assert chart.labels[0] == "04/01/2025"
        assert chart.labels[-1] == "04/11/2025"
        assert len(chart.labels) == 9
        assert [s.name for s in chart.series] == ["S&P 500", "NASDAQ"]
        assert [a.text for a in chart.annotations] == ["Tariff Announcement"]

    @pytest.mark.asyncio
    async def test_chart_with_indicators_and_custom_events(self, client, primary):
        _load_tariff_window(primary)

        chart = await client.get_chart("TARIFF", indicators=["SMA"], events={date(2025, 4, 9): "Pause"})

        assert [a.text for a in chart.annotations] == ["Pause"]
        assert {i.parameters["Series"] for i in chart.technical_indicators} == {"S&P 500", "NASDAQ"}
        assert len(chart.technical_indicators) == 6

    @pytest.mark.asyncio
    async def test_chart_is_down_sampled(self, client, config, primary):
        config.chart.max_data_points = 3
        _load_tariff_window(primary)

        chart = await client.get_chart("tariff")

        assert len(chart.labels) == 3
        assert all(len(s.data) == 3 for s in chart.series)

    @pytest.mark.asyncio
    async def test_comparison_overlay(self, client, primary):
        _load_tariff_window(primary)
        primary.add_closes("^GSPC", date(2017, 1, 20), [2271, 2265, 2280, 2298, 2296, 2294, 2280], trading_days_only=True)

        chart = await client.get_chart("tariff", compare=True)

        assert chart.title.endswith("(with comparison)")
        overlay = chart.series_by_name("S&P 500 (Previous)")
        assert overlay is not None
        assert len(overlay.data) == len(chart.labels)
        assert chart.series_by_name("NASDAQ (Previous)") is None

    @pytest.mark.asyncio
    async def test_unknown_period(self, client):
        with pytest.raises(InvalidArgumentError):
            await client.get_chart("midterms")

    @pytest.mark.asyncio
    async def test_context_manager_leaves_injected_repository_open(self, config, repository, primary, backup, clock):
        async with MarketChartsClient(
            config, repository=repository, primary=primary, backup=backup, clock=clock
        ) as client:
            assert client.service.reconciler.repository is repository

        assert await repository.get_latest("S&P 500") is None

    def test_default_events(self, client):
        assert client.default_events() == {
            date(2025, 1, 20): "Inauguration",
            date(2025, 4, 1): "Tariff Announcement",
        }


class TestDailyUpdates:
    @pytest.mark.asyncio
    async def test_context_manager_schedules_updates_when_enabled(self, config, repository, primary, backup, clock):
        async with MarketChartsClient(
            config, repository=repository, primary=primary, backup=backup, clock=clock
        ) as client:
            task = client.start_daily_updates()
            assert task.get_name() == "marketcharts-daily-update"
            assert not task.done()

        assert task.cancelled()
        assert primary.history_calls == 0

    @pytest.mark.asyncio
    async def test_updates_not_scheduled_when_disabled(self, config, repository, primary, backup, clock):
        config.enable_daily_updates = False

        async with MarketChartsClient(
            config, repository=repository, primary=primary, backup=backup, clock=clock
        ) as client:
            assert client._update_task is None
