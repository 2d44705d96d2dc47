"""DuckDB price repository tests."""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from marketcharts.core.exceptions import StorageError


@pytest.mark.asyncio
async def test_save_and_read_back(repository, point_factory):
    point = point_factory(date(2025, 1, 2), "5868.55", fetched_at=datetime(2025, 1, 2, 21, 0, tzinfo=UTC))

    point_id = await repository.save(point)
    stored = await repository.get_by_date_and_index(date(2025, 1, 2), "S&P 500")

    assert stored is not None
    assert stored.id == point_id
    assert stored.close == Decimal("5868.55")
    assert stored.fetched_at == datetime(2025, 1, 2, 21, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_save_returns_existing_id_for_same_date(repository, point_factory):
    first = await repository.save(point_factory(date(2025, 1, 2), 100))
    second = await repository.save(point_factory(date(2025, 1, 2), 200))

    stored = await repository.get_by_date_and_index(date(2025, 1, 2), "S&P 500")
    assert first == second
    assert stored.close == Decimal("100")


@pytest.mark.asyncio
async def test_save_batch_ignores_duplicates(repository, point_factory):
    batch = [point_factory(date(2025, 1, day), 100 + day) for day in (2, 3, 6)]

    assert await repository.save_batch(batch) == 3
    assert await repository.save_batch(batch) == 0
    assert await repository.save_batch([]) == 0

    stored = await repository.get_by_date_range("S&P 500", date(2025, 1, 1), date(2025, 1, 31))
    assert [p.date for p in stored] == [date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 6)]


@pytest.mark.asyncio
async def test_date_range_is_per_index_and_inclusive(repository, point_factory):
    await repository.save_batch(
        [
            point_factory(date(2025, 1, 2), 1, index_name="S&P 500"),
            point_factory(date(2025, 1, 3), 2, index_name="S&P 500"),
            point_factory(date(2025, 1, 3), 3, index_name="NASDAQ"),
        ]
    )

    stored = await repository.get_by_date_range("S&P 500", date(2025, 1, 3), date(2025, 1, 3))

    assert len(stored) == 1
    assert stored[0].close == Decimal("2")


@pytest.mark.asyncio
async def test_get_latest(repository, point_factory):
    assert await repository.get_latest("Dow Jones") is None

    await repository.save_batch([point_factory(date(2025, 1, d), d, index_name="Dow Jones") for d in (2, 6, 3)])

    latest = await repository.get_latest("Dow Jones")
    assert latest.date == date(2025, 1, 6)


@pytest.mark.asyncio
async def test_update(repository, point_factory):
    await repository.save(point_factory(date(2025, 1, 2), 100))
    revised = point_factory(date(2025, 1, 2), 101, fetched_at=datetime(2025, 1, 3, 9, 0, tzinfo=UTC))

    assert await repository.update(revised) is True
    assert await repository.update(point_factory(date(2025, 1, 9), 1)) is False

    stored = await repository.get_by_date_and_index(date(2025, 1, 2), "S&P 500")
    assert stored.close == Decimal("101")
    assert stored.fetched_at == datetime(2025, 1, 3, 9, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_query_failure_raises_storage_error(repository):
    repository.close()

    with pytest.raises(StorageError):
        await repository.get_latest("S&P 500")
