"""图表数据处理器

Turns stored price points into chart-ready series: windowing, gap filling,
alignment, normalization, comparison overlays, down-sampling and
technical indicators.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from decimal import Decimal

from marketcharts.core.config import ChartConfig
from marketcharts.core.exceptions import InsufficientDataError, InvalidArgumentError
from marketcharts.core.logging import get_logger
from marketcharts.core.models import (
    EVENT_ANNOTATION,
    NORMALIZED_DATA_TYPE,
    PRICE_DATA_TYPE,
    ChartAnnotation,
    ChartData,
    ChartSeries,
    PricePoint,
    TechnicalIndicator,
)
from marketcharts.core.services.calendars import USMarketCalendar, default_calendar
from marketcharts.core.services.charts.indicators import (
    DEFAULT_RSI_PERIOD,
    DEFAULT_SMA_PERIODS,
    DEFAULT_VOLATILITY_PERIOD,
    annualized_volatility,
    percentage_change,
    relative_strength_index,
    simple_moving_average,
)
from marketcharts.core.services.charts.palette import comparison_color, index_color, indicator_color
from marketcharts.core.services.charts.trends import Trend, classify_trends

logger = get_logger(__name__)

LABEL_FORMAT = "%m/%d/%Y"
COMPARISON_SUFFIX = " (Previous)"
COMPARISON_TITLE_SUFFIX = " (with comparison)"


def format_label(day: date) -> str:
    return day.strftime(LABEL_FORMAT)


def parse_label(label: str) -> date:
    return datetime.strptime(label, LABEL_FORMAT).date()


def _check_range(start: date, end: date) -> None:
    if start >= end:
        raise InvalidArgumentError("Start date must be before end date", argument="start_date")


def _window(points: Iterable[PricePoint], start: date, end: date) -> list[PricePoint]:
    return sorted((p for p in points if start <= p.date <= end), key=lambda p: p.date)


def _fit(values: list[Decimal], length: int) -> list[Decimal]:
    """Truncate, or pad by repeating the last value, to ``length`` entries."""
    if len(values) >= length:
        return values[:length]
    if not values:
        return [Decimal(0)] * length
    return values + [values[-1]] * (length - len(values))


class ChartDataProcessor:
    """Series transformer.

    Stateless apart from configuration; every operation returns new
    objects and leaves its inputs untouched.

    Args:
        config: Chart colors and sampling options.
        calendar: Calendar used for weekday gap filling.
        max_workers: Thread pool size for indicator computation.
    """

    def __init__(
        self,
        config: ChartConfig | None = None,
        calendar: USMarketCalendar | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.config = config or ChartConfig()
        self.calendar = calendar or default_calendar
        self.max_workers = max_workers
        self._color_overrides = {
            "s&p 500": self.config.sp500_color,
            "dow jones": self.config.dow_jones_color,
            "nasdaq": self.config.nasdaq_color,
        }

    def series_color(self, index_name: str) -> str:
        return index_color(index_name, self._color_overrides)

    # ------------------------------------------------------------------
    # formatting
    # ------------------------------------------------------------------

    def format_data_for_chart(
        self,
        data: Mapping[str, Sequence[PricePoint]],
        title: str,
        start_date: date,
        end_date: date,
    ) -> ChartData:
        """Build a ChartData from per-index price records.

        The first index supplies the date axis. Other indices are mapped
        onto it, forward-filling dates they lack.
        """
        if not data:
            raise InvalidArgumentError("Data cannot be empty", argument="data")
        _check_range(start_date, end_date)

        windows = {name: _window(points, start_date, end_date) for name, points in data.items()}
        reference = next((points for points in windows.values() if points), None)
        if reference is None:
            raise InsufficientDataError(
                f"No data between {start_date} and {end_date}",
                details={"indices": list(windows)},
            )

        axis = [p.date for p in reference]
        series: list[ChartSeries] = []
        for name, points in windows.items():
            if not points:
                logger.warning("Skipping index without data in range", index_name=name)
                continue
            series.append(
                ChartSeries(
                    name=name,
                    data=self._values_on_axis(points, axis),
                    color=self.series_color(name),
                    data_type=PRICE_DATA_TYPE,
                )
            )

        return ChartData(
            title=title,
            labels=[format_label(day) for day in axis],
            series=series,
            start_date=start_date,
            end_date=end_date,
        )

    @staticmethod
    def _values_on_axis(points: Sequence[PricePoint], axis: Sequence[date]) -> list[Decimal]:
        closes = {p.date: p.close for p in points}
        values: list[Decimal] = []
        last: Decimal | None = None
        for day in axis:
            if day in closes:
                last = closes[day]
            values.append(last if last is not None else points[0].close)
        return values

    def handle_missing_dates(self, chart: ChartData, start_date: date, end_date: date) -> ChartData:
        """Rebuild the chart on a weekday axis, carrying values across gaps."""
        _check_range(start_date, end_date)
        old_positions = {label: i for i, label in enumerate(chart.labels)}
        days = self.calendar.weekdays(start_date, end_date)
        labels = [format_label(day) for day in days]

        series: list[ChartSeries] = []
        for item in chart.series:
            filled: list[Decimal] = []
            next_index = 0
            for label in labels:
                position = old_positions.get(label)
                if position is not None and position < len(item.data):
                    filled.append(item.data[position])
                    next_index = position + 1
                elif filled:
                    filled.append(filled[-1])
                elif next_index < len(item.data):
                    filled.append(item.data[next_index])
                else:
                    filled.append(Decimal(0))
            series.append(item.model_copy(update={"data": filled}))

        return ChartData(
            title=chart.title,
            labels=labels,
            series=series,
            start_date=start_date,
            end_date=end_date,
            technical_indicators=list(chart.technical_indicators),
            annotations=list(chart.annotations),
        )

    def align_data_series(self, series: Sequence[ChartSeries]) -> list[ChartSeries]:
        """Truncate every series to the shortest length."""
        if not series:
            raise InvalidArgumentError("Series list cannot be empty", argument="series")
        length = min(len(item.data) for item in series)
        return [item.model_copy(update={"data": list(item.data[:length])}) for item in series]

    def normalize_data(self, series: Sequence[ChartSeries]) -> list[ChartSeries]:
        """Rebase each series to 100 at its first non-zero value.

        Empty and all-zero series are dropped.
        """
        if not series:
            raise InvalidArgumentError("Series list cannot be empty", argument="series")

        normalized: list[ChartSeries] = []
        for item in series:
            base = next((value for value in item.data if value != 0), None)
            if base is None:
                logger.debug("Skipping series without a usable base", series=item.name)
                continue
            normalized.append(
                item.model_copy(
                    update={
                        "data": [value / base * 100 for value in item.data],
                        "data_type": NORMALIZED_DATA_TYPE,
                    }
                )
            )
        return normalized

    def calculate_percentage_changes(
        self, data: Mapping[str, Sequence[PricePoint]], base_date: date
    ) -> dict[str, list[Decimal]]:
        """Percent change of every close against the close at ``base_date``.

        Falls back to the closest earlier close when the base date is
        missing or zero. Indices with no usable base are omitted.
        """
        if not data:
            raise InvalidArgumentError("Data cannot be empty", argument="data")

        changes: dict[str, list[Decimal]] = {}
        for name, points in data.items():
            ordered = sorted(points, key=lambda p: p.date)
            base = next((p.close for p in ordered if p.date == base_date), None)
            if base is None or base == 0:
                earlier = [p for p in ordered if p.date <= base_date]
                if not earlier:
                    logger.warning("No base value for percentage change", index_name=name, base_date=str(base_date))
                    continue
                base = earlier[-1].close
            changes[name] = [percentage_change(p.close, base) for p in ordered]
        return changes

    def generate_chart_labels(self, start_date: date, end_date: date, points: int) -> list[str]:
        """Evenly spaced date labels; daily when ``points`` covers the range."""
        if points <= 0:
            raise InvalidArgumentError("Number of points must be greater than zero", argument="points")
        _check_range(start_date, end_date)

        total_days = (end_date - start_date).days
        if points >= total_days:
            return [format_label(start_date + timedelta(days=i)) for i in range(total_days + 1)]
        if points == 1:
            return [format_label(start_date)]

        interval = total_days / (points - 1)
        labels = []
        for i in range(points):
            day = start_date + timedelta(days=i * interval)
            labels.append(format_label(min(day, end_date)))
        return labels

    # ------------------------------------------------------------------
    # comparison / sampling / annotations
    # ------------------------------------------------------------------

    def generate_comparison_data(
        self,
        current: ChartData,
        previous: Mapping[str, Sequence[PricePoint]],
        start_date: date,
        end_date: date,
    ) -> ChartData:
        """Overlay an equal-length window from an earlier period.

        Each previous window starts at that index's first record and spans
        the same number of days as the current range.
        """
        if not previous:
            return current

        duration = end_date - start_date
        label_count = len(current.labels)
        overlays: list[ChartSeries] = []
        for item in current.series:
            points = previous.get(item.name)
            if not points:
                continue
            ordered = sorted(points, key=lambda p: p.date)
            window_start = ordered[0].date
            window = _window(ordered, window_start, window_start + duration)
            overlays.append(
                ChartSeries(
                    name=f"{item.name}{COMPARISON_SUFFIX}",
                    data=_fit([p.close for p in window], label_count),
                    color=comparison_color(item.color),
                    data_type=item.data_type,
                    is_comparison=True,
                )
            )

        return current.model_copy(
            update={
                "title": f"{current.title}{COMPARISON_TITLE_SUFFIX}",
                "series": [*current.series, *overlays],
                "technical_indicators": list(current.technical_indicators),
                "annotations": list(current.annotations),
            }
        )

    def optimize_data_points(self, chart: ChartData, max_points: int) -> ChartData:
        """Down-sample labels, series and indicators to at most ``max_points``."""
        if max_points <= 0:
            raise InvalidArgumentError("Max points must be greater than zero", argument="max_points")
        if len(chart.labels) <= max_points:
            return chart

        step = math.ceil(len(chart.labels) / max_points)
        indexes = range(0, len(chart.labels), step)

        return ChartData(
            title=chart.title,
            labels=[chart.labels[i] for i in indexes],
            series=[
                item.model_copy(update={"data": [item.data[i] for i in indexes if i < len(item.data)]})
                for item in chart.series
            ],
            start_date=chart.start_date,
            end_date=chart.end_date,
            technical_indicators=[
                indicator.model_copy(
                    update={"values": [indicator.values[i] for i in indexes if i < len(indicator.values)]}
                )
                for indicator in chart.technical_indicators
            ],
            annotations=list(chart.annotations),
        )

    def generate_annotations(self, chart: ChartData, events: Mapping[date, str]) -> ChartData:
        """Attach event annotations that fall inside the chart's date range."""
        if not events:
            return chart
        added = [
            ChartAnnotation(date=day, text=text, type=EVENT_ANNOTATION)
            for day, text in sorted(events.items())
            if chart.start_date <= day <= chart.end_date
        ]
        return chart.model_copy(update={"annotations": [*chart.annotations, *added]})

    # ------------------------------------------------------------------
    # indicators
    # ------------------------------------------------------------------

    def calculate_moving_averages(
        self, series: ChartSeries, periods: Sequence[int] = DEFAULT_SMA_PERIODS
    ) -> list[TechnicalIndicator]:
        if not periods:
            raise InvalidArgumentError("At least one period is required", argument="periods")
        indicators = []
        for period in periods:
            name = f"SMA{period}"
            indicators.append(
                TechnicalIndicator(
                    name=name,
                    parameters={"Period": period},
                    values=simple_moving_average(series.data, period),
                    color=indicator_color(name),
                )
            )
        return indicators

    def calculate_rsi(self, series: ChartSeries, period: int = DEFAULT_RSI_PERIOD) -> TechnicalIndicator:
        return TechnicalIndicator(
            name="RSI",
            parameters={"Period": period},
            values=relative_strength_index(series.data, period),
            color=indicator_color("RSI"),
        )

    def calculate_volatility(
        self, series: ChartSeries, period: int = DEFAULT_VOLATILITY_PERIOD
    ) -> TechnicalIndicator:
        return TechnicalIndicator(
            name="Volatility",
            parameters={"Period": period},
            values=annualized_volatility(series.data, period),
            color=indicator_color("Volatility"),
        )

    def identify_trends(self, series: ChartSeries) -> list[Trend]:
        return classify_trends(series.data)

    def _indicators_for_series(self, series: ChartSeries, names: Sequence[str]) -> list[TechnicalIndicator]:
        computed: list[TechnicalIndicator] = []
        for raw_name in names:
            name = raw_name.upper()
            try:
                if name == "SMA":
                    computed.extend(self.calculate_moving_averages(series))
                elif name == "RSI":
                    computed.append(self.calculate_rsi(series))
                elif name == "VOLATILITY":
                    computed.append(self.calculate_volatility(series))
                else:
                    logger.debug("Ignoring unknown indicator", indicator=raw_name)
            except InsufficientDataError as e:
                logger.warning(
                    "Series too short for indicator",
                    series=series.name,
                    indicator=name,
                    count=len(series.data),
                    error=e.message,
                )
        return [
            indicator.model_copy(update={"parameters": {**indicator.parameters, "Series": series.name}})
            for indicator in computed
        ]

    def apply_technical_indicators(self, chart: ChartData, indicators: Sequence[str]) -> ChartData:
        """Compute the named indicators for every series.

        Series are processed on a thread pool; results are appended in
        series order, then indicator order.
        """
        if not indicators:
            return chart

        results: dict[int, list[TechnicalIndicator]] = {}
        lock = threading.Lock()

        def work(position: int, series: ChartSeries) -> None:
            computed = self._indicators_for_series(series, indicators)
            with lock:
                results[position] = computed

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(work, i, item) for i, item in enumerate(chart.series)]
            for future in futures:
                future.result()

        ordered = [indicator for i in range(len(chart.series)) for indicator in results.get(i, [])]
        logger.debug("Applied technical indicators", requested=list(indicators), computed=len(ordered))
        return chart.model_copy(update={"technical_indicators": [*chart.technical_indicators, *ordered]})


__all__ = ["COMPARISON_SUFFIX", "ChartDataProcessor", "LABEL_FORMAT", "format_label", "parse_label"]
