"""基于DuckDB的价格仓储实现"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

import duckdb

from marketcharts.core.data.repositories.base import PriceRepository
from marketcharts.core.exceptions import StorageError
from marketcharts.core.logging import get_logger
from marketcharts.core.models import PricePoint

logger = get_logger(__name__)

_SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS index_prices_id_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS index_prices (
        id BIGINT NOT NULL DEFAULT nextval('index_prices_id_seq'),
        index_name VARCHAR NOT NULL,
        trade_date DATE NOT NULL,
        open_price DECIMAL(18, 4) NOT NULL,
        high_price DECIMAL(18, 4) NOT NULL,
        low_price DECIMAL(18, 4) NOT NULL,
        close_price DECIMAL(18, 4) NOT NULL,
        volume BIGINT NOT NULL,
        fetched_at TIMESTAMP NOT NULL,
        PRIMARY KEY (index_name, trade_date)
    )
    """,
)

_COLUMNS = "id, index_name, trade_date, open_price, high_price, low_price, close_price, volume, fetched_at"


def _to_storage_timestamp(value: datetime) -> datetime:
    # TIMESTAMP columns hold naive UTC
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def _row_to_point(row: tuple[Any, ...]) -> PricePoint:
    return PricePoint(
        id=row[0],
        index_name=row[1],
        date=row[2],
        open=row[3],
        high=row[4],
        low=row[5],
        close=row[6],
        volume=row[7],
        fetched_at=row[8].replace(tzinfo=UTC),
    )


class DuckDBPriceRepository(PriceRepository):
    """DuckDB价格仓储, 测试中使用 ``:memory:``"""

    def __init__(
        self,
        db_path: str = ":memory:",
        connection: duckdb.DuckDBPyConnection | None = None,
    ) -> None:
        self.db_path = db_path
        self.conn = connection or duckdb.connect(db_path)
        for statement in _SCHEMA:
            self.conn.execute(statement)

    def close(self) -> None:
        self.conn.close()

    def _query(self, sql: str, params: list[Any]) -> list[tuple[Any, ...]]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except duckdb.Error as e:
            logger.error("DuckDB query failed", error=str(e))
            raise StorageError(f"Query failed: {e}") from e

    async def get_by_date_range(self, index_name: str, start: date, end: date) -> list[PricePoint]:
        rows = self._query(
            f"""
            SELECT {_COLUMNS} FROM index_prices
            WHERE index_name = ? AND trade_date >= ? AND trade_date <= ?
            ORDER BY trade_date ASC
            """,
            [index_name, start, end],
        )
        return [_row_to_point(row) for row in rows]

    async def get_latest(self, index_name: str) -> PricePoint | None:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM index_prices WHERE index_name = ? ORDER BY trade_date DESC LIMIT 1",
            [index_name],
        )
        return _row_to_point(rows[0]) if rows else None

    async def get_by_date_and_index(self, day: date, index_name: str) -> PricePoint | None:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM index_prices WHERE index_name = ? AND trade_date = ?",
            [index_name, day],
        )
        return _row_to_point(rows[0]) if rows else None

    async def save(self, point: PricePoint) -> int:
        existing = await self.get_by_date_and_index(point.date, point.index_name)
        if existing is not None and existing.id is not None:
            return existing.id
        rows = self._query(
            """
            INSERT INTO index_prices
            (index_name, trade_date, open_price, high_price, low_price, close_price, volume, fetched_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            self._values(point),
        )
        return int(rows[0][0])

    async def save_batch(self, points: list[PricePoint]) -> int:
        if not points:
            return 0
        try:
            before = self.conn.execute("SELECT COUNT(*) FROM index_prices").fetchone()[0]
            self.conn.executemany(
                """
                INSERT OR IGNORE INTO index_prices
                (index_name, trade_date, open_price, high_price, low_price, close_price, volume, fetched_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [self._values(point) for point in points],
            )
            after = self.conn.execute("SELECT COUNT(*) FROM index_prices").fetchone()[0]
        except duckdb.Error as e:
            logger.error("Failed to save price batch", error=str(e), count=len(points))
            raise StorageError(f"Failed to save price batch: {e}") from e
        inserted = int(after - before)
        logger.debug("Saved price batch", requested=len(points), inserted=inserted)
        return inserted

    async def update(self, point: PricePoint) -> bool:
        existing = await self.get_by_date_and_index(point.date, point.index_name)
        if existing is None:
            return False
        self._query(
            """
            UPDATE index_prices
            SET open_price = ?, high_price = ?, low_price = ?, close_price = ?, volume = ?, fetched_at = ?
            WHERE index_name = ? AND trade_date = ?
            """,
            [
                point.open,
                point.high,
                point.low,
                point.close,
                point.volume,
                _to_storage_timestamp(point.fetched_at),
                point.index_name,
                point.date,
            ],
        )
        return True

    @staticmethod
    def _values(point: PricePoint) -> list[Any]:
        return [
            point.index_name,
            point.date,
            point.open,
            point.high,
            point.low,
            point.close,
            point.volume,
            _to_storage_timestamp(point.fetched_at),
        ]


__all__ = ["DuckDBPriceRepository"]
