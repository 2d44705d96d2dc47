"""Technical indicator math on plain Decimal sequences.

All functions return one entry per input value; positions that cannot be
computed yet (warm-up) are ``None``.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from marketcharts.core.exceptions import InsufficientDataError, InvalidArgumentError

DEFAULT_SMA_PERIODS: tuple[int, ...] = (20, 50, 200)
DEFAULT_RSI_PERIOD = 14
DEFAULT_VOLATILITY_PERIOD = 20
TRADING_DAYS_PER_YEAR = 252

_HUNDRED = Decimal(100)
_ZERO = Decimal(0)


def _check_period(period: int) -> None:
    if period <= 0:
        raise InvalidArgumentError(f"Period must be greater than zero: {period}", argument="period")


def _check_length(values: Sequence[Decimal], period: int) -> None:
    if len(values) <= period:
        raise InsufficientDataError(
            f"Data must contain more than {period} points",
            details={"count": len(values), "period": period},
        )


def simple_moving_average(values: Sequence[Decimal], period: int) -> list[Decimal | None]:
    """Mean of the trailing ``period`` values; None for the first ``period - 1`` positions."""
    _check_period(period)
    result: list[Decimal | None] = []
    window_sum = _ZERO
    divisor = Decimal(period)
    for i, value in enumerate(values):
        window_sum += value
        if i >= period:
            window_sum -= values[i - period]
        result.append(window_sum / divisor if i >= period - 1 else None)
    return result


def relative_strength_index(values: Sequence[Decimal], period: int = DEFAULT_RSI_PERIOD) -> list[Decimal | None]:
    """RSI from summed gains and losses over the trailing ``period`` deltas.

    Not Wilder-smoothed. 100 when the window has no losses.
    """
    _check_period(period)
    _check_length(values, period)

    deltas = [values[i] - values[i - 1] for i in range(1, len(values))]
    result: list[Decimal | None] = [None] * period
    for i in range(period, len(values)):
        window = deltas[i - period : i]
        gains = sum((d for d in window if d > 0), _ZERO)
        losses = abs(sum((d for d in window if d < 0), _ZERO))
        if losses == 0:
            result.append(_HUNDRED)
        else:
            rs = gains / losses
            result.append(_HUNDRED - _HUNDRED / (1 + rs))
    return result


def annualized_volatility(
    values: Sequence[Decimal], period: int = DEFAULT_VOLATILITY_PERIOD
) -> list[Decimal | None]:
    """Population std-dev of trailing daily returns, annualized and in percent."""
    _check_period(period)
    _check_length(values, period)

    returns = [
        (values[i] / values[i - 1]) - 1 if values[i - 1] != 0 else _ZERO
        for i in range(1, len(values))
    ]
    annualize = Decimal(TRADING_DAYS_PER_YEAR).sqrt()
    divisor = Decimal(period)

    result: list[Decimal | None] = [None] * period
    for i in range(period, len(values)):
        window = returns[i - period : i]
        mean = sum(window, _ZERO) / divisor
        variance = sum(((r - mean) ** 2 for r in window), _ZERO) / divisor
        result.append(variance.sqrt() * annualize * _HUNDRED)
    return result


def percentage_change(current: Decimal, base: Decimal) -> Decimal:
    """Percent change of ``current`` relative to ``base``; 0 when base is 0."""
    if base == 0:
        return _ZERO
    return (current - base) / base * _HUNDRED


__all__ = [
    "DEFAULT_RSI_PERIOD",
    "DEFAULT_SMA_PERIODS",
    "DEFAULT_VOLATILITY_PERIOD",
    "TRADING_DAYS_PER_YEAR",
    "annualized_volatility",
    "percentage_change",
    "relative_strength_index",
    "simple_moving_average",
]
