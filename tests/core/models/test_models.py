from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from marketcharts.core.models import ChartData, ChartSeries, PricePoint


def _point(**overrides) -> PricePoint:
    values = {
        "index_name": "S&P 500",
        "date": date(2025, 1, 2),
        "open": Decimal("100"),
        "high": Decimal("105"),
        "low": Decimal("99"),
        "close": Decimal("104"),
        "volume": 1000,
    }
    values.update(overrides)
    return PricePoint(**values)


def test_price_point_truncates_datetime_to_date() -> None:
    point = _point(date=datetime(2025, 1, 2, 15, 30, tzinfo=UTC))

    assert point.date == date(2025, 1, 2)


def test_price_point_rejects_negative_volume() -> None:
    with pytest.raises(ValidationError):
        _point(volume=-1)


def test_price_point_internal_consistency() -> None:
    assert _point().is_internally_consistent
    assert not _point(high=Decimal("98")).is_internally_consistent
    assert not _point(close=Decimal("106")).is_internally_consistent


def test_price_point_json_serializes_prices_as_strings() -> None:
    payload = _point(close=Decimal("104.25")).model_dump(mode="json")

    assert payload["close"] == "104.25"
    assert payload["date"] == "2025-01-02"


def test_chart_data_requires_one_value_per_label() -> None:
    with pytest.raises(ValidationError):
        ChartData(
            labels=["01/02/2025", "01/03/2025"],
            series=[ChartSeries(name="S&P 500", data=[Decimal("1")])],
            start_date=date(2025, 1, 2),
            end_date=date(2025, 1, 3),
        )


def test_chart_data_series_by_name() -> None:
    chart = ChartData(
        labels=["01/02/2025"],
        series=[ChartSeries(name="NASDAQ", data=[Decimal("1")])],
        start_date=date(2025, 1, 2),
        end_date=date(2025, 1, 2),
    )

    assert chart.series_by_name("NASDAQ") is chart.series[0]
    assert chart.series_by_name("Dow Jones") is None
