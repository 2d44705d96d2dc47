"""Pytest configuration for marketcharts test suite."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from marketcharts.core.data.providers import HttpClient, HttpConfig, PriceProvider
from marketcharts.core.data.repositories import DuckDBPriceRepository
from marketcharts.core.models import PricePoint


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--marketcharts-run-integration",
        action="store_true",
        default=False,
        help="Run marketcharts integration tests that call the live upstream APIs.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for marketcharts tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks marketcharts tests requiring network or external services",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--marketcharts-run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="integration tests require --marketcharts-run-integration",
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider(PriceProvider):
    """In-memory provider with switchable availability and failures."""

    def __init__(self, name: str, *, limit: int = 100, clock: ManualClock | None = None) -> None:
        http_client = HttpClient(HttpConfig(base_url="https://fake.invalid"), provider_name=name)
        super().__init__(name, limit, http_client, clock)
        self.rows: dict[str, list[tuple[date, Decimal, Decimal, Decimal, Decimal]]] = {}
        self.available = True
        self.error: Exception | None = None
        self.history_calls = 0
        self.probe_calls = 0

    def add_closes(self, symbol: str, start: date, closes: Iterable[Any], *, trading_days_only: bool = False) -> None:
        """Store one row per close; open equals close, high/low bracket it by 1."""
        day = start
        for close in closes:
            while trading_days_only and day.weekday() >= 5:
                day += timedelta(days=1)
            value = Decimal(str(close))
            self.rows.setdefault(symbol, []).append((day, value, value + 1, value - 1, value))
            day += timedelta(days=1)

    def add_row(self, symbol: str, day: date, open_: Any, high: Any, low: Any, close: Any) -> None:
        self.rows.setdefault(symbol, []).append(
            (day, Decimal(str(open_)), Decimal(str(high)), Decimal(str(low)), Decimal(str(close)))
        )

    async def _request_history(self, symbol: str, start: date, end: date) -> Any:
        self.history_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.rows.get(symbol, []))

    def _parse_history(self, payload: Any, symbol: str) -> list[PricePoint]:
        return [
            self._build_point(symbol, day, open_, high, low, close, 1000)
            for day, open_, high, low, close in payload
        ]

    async def _probe(self) -> bool:
        self.probe_calls += 1
        return self.available


def make_point(
    day: date,
    close: Any,
    *,
    index_name: str = "S&P 500",
    open_: Any = None,
    high: Any = None,
    low: Any = None,
    fetched_at: datetime | None = None,
) -> PricePoint:
    close_value = Decimal(str(close))
    open_value = Decimal(str(open_)) if open_ is not None else close_value
    return PricePoint(
        index_name=index_name,
        date=day,
        open=open_value,
        high=Decimal(str(high)) if high is not None else max(open_value, close_value) + 1,
        low=Decimal(str(low)) if low is not None else min(open_value, close_value) - 1,
        close=close_value,
        volume=1000,
        fetched_at=fetched_at or datetime(2025, 6, 2, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def clock() -> ManualClock:
    # Monday, an ordinary trading day
    return ManualClock(datetime(2025, 6, 2, 12, 0, tzinfo=UTC))


@pytest.fixture
def primary(clock: ManualClock) -> FakeProvider:
    return FakeProvider("Primary", clock=clock)


@pytest.fixture
def backup(clock: ManualClock) -> FakeProvider:
    return FakeProvider("Backup", clock=clock)


@pytest.fixture
def repository() -> Iterable[DuckDBPriceRepository]:
    repo = DuckDBPriceRepository(":memory:")
    yield repo
    repo.close()


@pytest.fixture
def point_factory():
    return make_point


@pytest.fixture
def provider_factory():
    return FakeProvider
