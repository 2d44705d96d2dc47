"""Reconcile fetched index prices with stored history.

The reconciler sits between the provider selector and the repository. It
merges freshly fetched records into storage without duplicating dates, keeps
settled history from being silently revised, flags implausible rows, and
resolves disagreements between the primary and backup providers in favour of
the primary.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, TypeVar

import pandas as pd

from marketcharts.core.config import ApiConfig
from marketcharts.core.data.providers.base import PriceProvider
from marketcharts.core.data.repositories.base import PriceRepository
from marketcharts.core.exceptions import InvalidArgumentError, ProviderError, StorageError
from marketcharts.core.logging import get_logger
from marketcharts.core.models import PricePoint
from marketcharts.core.patterns.failover import ProviderSelector
from marketcharts.core.patterns.retry import ExponentialBackoffRetry, RetryConfig
from marketcharts.core.services.calendars import USMarketCalendar, default_calendar

logger = get_logger(__name__)

T = TypeVar("T")

FETCH_INTERVAL_PER_DAY = timedelta(hours=24)
DST_SHIFT = timedelta(hours=1)


@dataclass(frozen=True)
class ConsistencyThresholds:
    """Tolerances used when comparing and validating price records."""

    relative_tolerance: Decimal = Decimal("0.005")
    max_open_jump: Decimal = Decimal("0.10")
    update_window: timedelta = timedelta(days=7)


@dataclass
class ConsistencyReport:
    """Close-price comparison between the primary and backup providers."""

    index_name: str
    start_date: date | None
    end_date: date | None
    total_records: int
    matching_records: int
    mismatching_records: int
    missing_in_primary: int
    missing_in_backup: int
    average_close_difference: float
    max_close_difference: float
    issues: list[str]
    consistency_percentage: float = field(init=False)

    def __post_init__(self) -> None:
        compared = self.matching_records + self.mismatching_records
        if compared > 0:
            self.consistency_percentage = (self.matching_records / compared) * 100.0
        else:
            self.consistency_percentage = 100.0


class ConsistencyReconciler:
    """Merge, validate and reconcile daily index prices."""

    def __init__(
        self,
        repository: PriceRepository,
        selector: ProviderSelector,
        *,
        calendar: USMarketCalendar | None = None,
        api_config: ApiConfig | None = None,
        thresholds: ConsistencyThresholds | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.repository = repository
        self.selector = selector
        self.calendar = calendar or default_calendar
        self.thresholds = thresholds or ConsistencyThresholds()
        self._retry_config = RetryConfig.from_api_config(api_config or ApiConfig())
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sleep = sleep

    # ------------------------------------------------------------------
    # merge
    # ------------------------------------------------------------------
    async def fetch_and_merge(self, symbol: str, start: date, end: date) -> list[PricePoint]:
        """Fetch ``symbol`` for ``[start, end]`` and persist dates not yet stored.

        Returns the date-sorted union of stored and newly saved records.
        """
        if end < start:
            raise InvalidArgumentError("end must be on or after start", argument="end")

        logger.info("Fetching and merging data", symbol=symbol, start=start, end=end)
        provider, fetched = await self._fetch_with_failover(symbol, start, end)
        index_name = provider.resolve_index_name(symbol)

        existing = await self.repository.get_by_date_range(index_name, start, end)
        known_dates = {point.date for point in existing}

        delta: list[PricePoint] = []
        for point in fetched:
            if point.date in known_dates:
                continue
            known_dates.add(point.date)
            delta.append(point)

        if delta:
            saved = await self.repository.save_batch(delta)
            logger.info("Saved new data points", symbol=symbol, index_name=index_name, count=saved)

        return sorted([*existing, *delta], key=lambda point: point.date)

    async def fetch_latest(self, symbol: str) -> PricePoint:
        """Latest record for ``symbol`` from the selected provider, stored if new."""
        _, point = await self._with_failover(symbol, lambda provider: provider.get_latest_data(symbol))
        if await self.repository.get_by_date_and_index(point.date, point.index_name) is None:
            await self.repository.save(point)
        return point

    async def _fetch_with_failover(
        self, symbol: str, start: date, end: date
    ) -> tuple[PriceProvider, list[PricePoint]]:
        return await self._with_failover(
            symbol, lambda provider: provider.get_historical_data(symbol, start, end)
        )

    async def _with_failover(
        self, symbol: str, operation: Callable[[PriceProvider], Awaitable[T]]
    ) -> tuple[PriceProvider, T]:
        provider = await self.selector.get_service()
        try:
            return provider, await self._with_retry(provider, operation)
        except ProviderError as exc:
            if not self.selector.is_primary(provider):
                raise
            await self.selector.notify_primary_failure(exc)

        fallback = await self.selector.get_service()
        logger.info("Retrying fetch on fallback provider", symbol=symbol, provider=fallback.service_name)
        return fallback, await self._with_retry(fallback, operation)

    async def _with_retry(
        self, provider: PriceProvider, operation: Callable[[PriceProvider], Awaitable[T]]
    ) -> T:
        retry = ExponentialBackoffRetry(self._retry_config, sleep=self._sleep)
        return await retry.execute(operation, provider)

    async def should_fetch_for_date(self, index_name: str, day: date) -> bool:
        """False on market holidays/weekends or when the date is already stored."""
        if self.calendar.is_market_closed(day):
            return False
        existing = await self.repository.get_by_date_and_index(day, index_name)
        return existing is None

    # ------------------------------------------------------------------
    # cross-provider conflicts
    # ------------------------------------------------------------------
    async def resolve_conflicts(self, symbol: str, start: date, end: date) -> list[PricePoint]:
        """Union both providers' dates, preferring the primary where both report."""
        logger.info("Resolving data conflicts", symbol=symbol, start=start, end=end)
        primary_points, backup_points = await asyncio.gather(
            self.selector.primary.get_historical_data(symbol, start, end),
            self.selector.backup.get_historical_data(symbol, start, end),
        )
        primary_by_date = {point.date: point for point in primary_points}
        backup_by_date = {point.date: point for point in backup_points}

        resolved: list[PricePoint] = []
        for day in sorted(primary_by_date.keys() | backup_by_date.keys()):
            primary_point = primary_by_date.get(day)
            backup_point = backup_by_date.get(day)
            if primary_point is not None and backup_point is not None:
                if not self.are_points_consistent(primary_point, backup_point):
                    logger.warning(
                        "Data conflict detected",
                        symbol=symbol,
                        date=day,
                        primary={"open": primary_point.open, "close": primary_point.close,
                                 "high": primary_point.high, "low": primary_point.low},
                        backup={"open": backup_point.open, "close": backup_point.close,
                                "high": backup_point.high, "low": backup_point.low},
                    )
                resolved.append(primary_point)
            else:
                resolved.append(primary_point or backup_point)
        return resolved

    def are_points_consistent(self, reference: PricePoint, other: PricePoint) -> bool:
        """True when every OHLC field of ``other`` is within tolerance of ``reference``."""
        tolerance = self.thresholds.relative_tolerance
        for name in ("open", "close", "high", "low"):
            expected = getattr(reference, name)
            actual = getattr(other, name)
            if expected == 0:
                if actual != 0:
                    return False
                continue
            if abs((expected - actual) / expected) > tolerance:
                return False
        return True

    # ------------------------------------------------------------------
    # anomalies
    # ------------------------------------------------------------------
    def detect_anomalies(self, points: Sequence[PricePoint]) -> list[PricePoint]:
        """Flag opening gaps beyond the jump threshold and internally inconsistent rows."""
        ordered = sorted(points, key=lambda point: point.date)
        anomalies: list[PricePoint] = []
        previous: PricePoint | None = None

        for current in ordered:
            flagged = False
            if previous is not None and previous.close != 0:
                change = abs((current.open - previous.close) / previous.close)
                if change > self.thresholds.max_open_jump:
                    logger.warning(
                        "Data anomaly detected: opening gap",
                        index_name=current.index_name,
                        date=current.date,
                        previous_close=previous.close,
                        current_open=current.open,
                        change_percent=f"{change * 100:.2f}%",
                    )
                    flagged = True

            if not current.is_internally_consistent:
                logger.warning(
                    "Data anomaly detected: invalid price range",
                    index_name=current.index_name,
                    date=current.date,
                    open=current.open,
                    close=current.close,
                    high=current.high,
                    low=current.low,
                )
                flagged = True

            if flagged:
                anomalies.append(current)
            previous = current
        return anomalies

    def verify_data_consistency(self, points: Sequence[PricePoint]) -> bool:
        """No anomalies and no repeated (index, date) pair."""
        keys = [(point.index_name, point.date) for point in points]
        if len(keys) != len(set(keys)):
            return False
        by_index: dict[str, list[PricePoint]] = {}
        for point in points:
            by_index.setdefault(point.index_name, []).append(point)
        return all(not self.detect_anomalies(series) for series in by_index.values())

    # ------------------------------------------------------------------
    # timestamps
    # ------------------------------------------------------------------
    @staticmethod
    def normalize_timestamp(value: datetime | date) -> datetime:
        """Truncate to midnight, keeping any timezone."""
        if isinstance(value, datetime):
            return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)
        return datetime.combine(value, time.min)

    @staticmethod
    def normalize_point(point: PricePoint) -> PricePoint:
        """Copy with ``fetched_at`` in UTC; naive values are taken as UTC."""
        fetched_at = point.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)
        else:
            fetched_at = fetched_at.astimezone(UTC)
        return point.model_copy(update={"fetched_at": fetched_at})

    def normalize_time_series(self, points: Sequence[PricePoint]) -> list[PricePoint]:
        """Copy and sort ``points``, snapping one-hour DST drifts in ``fetched_at``.

        Consecutive fetches are expected 24h apart per calendar day between
        their dates, so a Friday to Monday pair is expected 72h apart.
        """
        normalized = sorted((self.normalize_point(point) for point in points), key=lambda point: point.date)
        for previous, current in zip(normalized, normalized[1:]):
            expected = (current.date - previous.date).days * FETCH_INTERVAL_PER_DAY
            drift = abs((current.fetched_at - previous.fetched_at) - expected)
            if expected and drift == DST_SHIFT:
                current.fetched_at = previous.fetched_at + expected
        return normalized

    # ------------------------------------------------------------------
    # historical overwrite policy
    # ------------------------------------------------------------------
    def should_update_historical_data(self, existing: PricePoint, incoming: PricePoint) -> bool:
        """Only records younger than the update window may be revised, and only when they diverge."""
        now = self._clock()
        stored_at = datetime.combine(existing.date, time.min, tzinfo=now.tzinfo)
        if now - stored_at > self.thresholds.update_window:
            return False
        return not self.are_points_consistent(existing, incoming)

    async def update_historical_data(self, incoming: PricePoint) -> bool:
        """Store ``incoming`` or overwrite the stored record when the policy allows it."""
        try:
            existing = await self.repository.get_by_date_and_index(incoming.date, incoming.index_name)
            if existing is None:
                await self.repository.save(incoming)
                return True

            if not self.should_update_historical_data(existing, incoming):
                logger.debug(
                    "Keeping stored historical data",
                    index_name=incoming.index_name,
                    date=incoming.date,
                )
                return False

            logger.warning(
                f"Updating historical data for {incoming.index_name} on {incoming.date.isoformat()}. "
                f"Old: O={existing.open}, C={existing.close}, H={existing.high}, L={existing.low}. "
                f"New: O={incoming.open}, C={incoming.close}, H={incoming.high}, L={incoming.low}",
                index_name=incoming.index_name,
                date=incoming.date,
            )
            updated = existing.model_copy(
                update={
                    "open": incoming.open,
                    "close": incoming.close,
                    "high": incoming.high,
                    "low": incoming.low,
                    "volume": incoming.volume,
                    "fetched_at": self._clock(),
                }
            )
            return await self.repository.update(updated)
        except StorageError as exc:
            logger.error(
                "Error updating historical data",
                index_name=incoming.index_name,
                date=incoming.date,
                error=exc.message,
            )
            return False

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------
    def build_consistency_report(
        self,
        primary_points: Sequence[PricePoint],
        backup_points: Sequence[PricePoint],
    ) -> ConsistencyReport:
        """Compare close prices from both providers date by date."""
        index_name = next((p.index_name for p in [*primary_points, *backup_points]), "")
        all_dates = [p.date for p in [*primary_points, *backup_points]]
        start_date = min(all_dates) if all_dates else None
        end_date = max(all_dates) if all_dates else None

        if not all_dates:
            return ConsistencyReport(
                index_name=index_name, start_date=None, end_date=None, total_records=0,
                matching_records=0, mismatching_records=0, missing_in_primary=0,
                missing_in_backup=0, average_close_difference=0.0, max_close_difference=0.0,
                issues=["Both data sources returned no data."],
            )

        primary_df = _to_frame(primary_points)
        backup_df = _to_frame(backup_points)
        merged = pd.merge(primary_df, backup_df, on="date", how="outer", suffixes=("_primary", "_backup"))
        merged = merged.sort_values("date").reset_index(drop=True)

        both = merged[merged["close_primary"].notna() & merged["close_backup"].notna()]
        diff = (both["close_primary"] - both["close_backup"]).abs()
        relative = diff / both["close_primary"].abs()
        mismatched = both[relative > float(self.thresholds.relative_tolerance)]

        issues = [
            f"Mismatch on {row['date']}: primary={row['close_primary']:.2f}, backup={row['close_backup']:.2f}"
            for _, row in mismatched.iterrows()
        ]

        return ConsistencyReport(
            index_name=index_name,
            start_date=start_date,
            end_date=end_date,
            total_records=len(merged),
            matching_records=len(both) - len(mismatched),
            mismatching_records=len(mismatched),
            missing_in_primary=int(merged["close_primary"].isna().sum()),
            missing_in_backup=int(merged["close_backup"].isna().sum()),
            average_close_difference=float(diff.mean()) if len(diff) else 0.0,
            max_close_difference=float(diff.max()) if len(diff) else 0.0,
            issues=issues,
        )


def _to_frame(points: Sequence[PricePoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"date": point.date, "close": float(point.close)} for point in points],
        columns=["date", "close"],
    )


__all__ = ["ConsistencyReconciler", "ConsistencyReport", "ConsistencyThresholds"]
