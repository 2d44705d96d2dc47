"""US equity market trading calendar."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from marketcharts.core.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

default_weekend = frozenset({5, 6})

# Observed NYSE full-day closures per year. Juneteenth is observed from 2022.
US_MARKET_HOLIDAYS: Mapping[int, tuple[date, ...]] = {
    2017: (
        date(2017, 1, 2),
        date(2017, 1, 16),
        date(2017, 2, 20),
        date(2017, 4, 14),
        date(2017, 5, 29),
        date(2017, 7, 4),
        date(2017, 9, 4),
        date(2017, 11, 23),
        date(2017, 12, 25),
    ),
    2018: (
        date(2018, 1, 1),
        date(2018, 1, 15),
        date(2018, 2, 19),
        date(2018, 3, 30),
        date(2018, 5, 28),
        date(2018, 7, 4),
        date(2018, 9, 3),
        date(2018, 11, 22),
        date(2018, 12, 25),
    ),
    2019: (
        date(2019, 1, 1),
        date(2019, 1, 21),
        date(2019, 2, 18),
        date(2019, 4, 19),
        date(2019, 5, 27),
        date(2019, 7, 4),
        date(2019, 9, 2),
        date(2019, 11, 28),
        date(2019, 12, 25),
    ),
    2020: (
        date(2020, 1, 1),
        date(2020, 1, 20),
        date(2020, 2, 17),
        date(2020, 4, 10),
        date(2020, 5, 25),
        date(2020, 7, 3),
        date(2020, 9, 7),
        date(2020, 11, 26),
        date(2020, 12, 25),
    ),
    2021: (
        date(2021, 1, 1),
        date(2021, 1, 18),
        date(2021, 2, 15),
        date(2021, 4, 2),
        date(2021, 5, 31),
        date(2021, 7, 5),
        date(2021, 9, 6),
        date(2021, 11, 25),
        date(2021, 12, 24),
    ),
    2022: (
        date(2022, 1, 17),
        date(2022, 2, 21),
        date(2022, 4, 15),
        date(2022, 5, 30),
        date(2022, 6, 20),
        date(2022, 7, 4),
        date(2022, 9, 5),
        date(2022, 11, 24),
        date(2022, 12, 26),
    ),
    2023: (
        date(2023, 1, 2),
        date(2023, 1, 16),
        date(2023, 2, 20),
        date(2023, 4, 7),
        date(2023, 5, 29),
        date(2023, 6, 19),
        date(2023, 7, 4),
        date(2023, 9, 4),
        date(2023, 11, 23),
        date(2023, 12, 25),
    ),
    2024: (
        date(2024, 1, 1),
        date(2024, 1, 15),
        date(2024, 2, 19),
        date(2024, 3, 29),
        date(2024, 5, 27),
        date(2024, 6, 19),
        date(2024, 7, 4),
        date(2024, 9, 2),
        date(2024, 11, 28),
        date(2024, 12, 25),
    ),
    2025: (
        date(2025, 1, 1),
        date(2025, 1, 20),
        date(2025, 2, 17),
        date(2025, 4, 18),
        date(2025, 5, 26),
        date(2025, 6, 19),
        date(2025, 7, 4),
        date(2025, 9, 1),
        date(2025, 11, 27),
        date(2025, 12, 25),
    ),
    2026: (
        date(2026, 1, 1),
        date(2026, 1, 19),
        date(2026, 2, 16),
        date(2026, 4, 3),
        date(2026, 5, 25),
        date(2026, 6, 19),
        date(2026, 7, 3),
        date(2026, 9, 7),
        date(2026, 11, 26),
        date(2026, 12, 25),
    ),
}


def _flatten(table: Mapping[int, Iterable[date]]) -> frozenset[date]:
    return frozenset(day for days in table.values() for day in days)


def _as_date(day: date | datetime) -> date:
    if isinstance(day, datetime):
        return day.date()
    return day


@dataclass(frozen=True)
class USMarketCalendar:
    """Fixed-table calendar for US equity index trading days."""

    holidays: frozenset[date] = field(default_factory=lambda: _flatten(US_MARKET_HOLIDAYS))
    weekend_days: frozenset[int] = default_weekend

    def is_market_closed(self, day: date | datetime) -> bool:
        """Return True on weekends and listed holidays."""

        day = _as_date(day)
        return day.weekday() in self.weekend_days or day in self.holidays

    def is_trading_day(self, day: date | datetime) -> bool:
        return not self.is_market_closed(day)

    def trading_days(self, start: date, end: date) -> list[date]:
        """Return trading days between the provided bounds inclusive."""

        start, end = _as_date(start), _as_date(end)
        if end < start:
            raise InvalidArgumentError("end must be on or after start", argument="end")
        return [day for day in _iter_days(start, end) if not self.is_market_closed(day)]

    def weekdays(self, start: date, end: date) -> list[date]:
        """Return Monday-to-Friday dates between the bounds inclusive, holidays included."""

        start, end = _as_date(start), _as_date(end)
        if end < start:
            return []
        return [day for day in _iter_days(start, end) if day.weekday() not in self.weekend_days]


def _iter_days(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


default_calendar = USMarketCalendar()


def is_market_closed(day: date | datetime) -> bool:
    """Return True when US equity markets are closed on ``day``."""

    return default_calendar.is_market_closed(day)


__all__ = [
    "US_MARKET_HOLIDAYS",
    "USMarketCalendar",
    "default_calendar",
    "default_weekend",
    "is_market_closed",
]
