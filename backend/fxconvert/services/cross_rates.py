"""
Pure rate arithmetic: spot conversion through the USD base and historical cross rates
through the EUR base.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from fxconvert.core.currencies import SPOT_BASE_CURRENCY
from fxconvert.core.errors import CurrencyNotFoundError
from fxconvert.schemas.statistics import CrossRatePoint

CROSS_RATE_DECIMALS = 6


def round_half_up(value: float) -> int:
    # repr() is the shortest string that round-trips, so 10050 * 0.85 rounds as 8542.5 -> 8543.
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _q_rate(value: float) -> float:
    quantum = Decimal(1).scaleb(-CROSS_RATE_DECIMALS)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _spot_rate(rates: Mapping[str, float], code: str) -> float:
    rate = rates.get(code)
    if rate is None:
        if code == SPOT_BASE_CURRENCY:
            return 1.0
        raise CurrencyNotFoundError(code)
    return rate


def convert_amount(rates: Mapping[str, float], source: str, target: str, amount: int) -> int:
    """
    Convert `amount` minor units of `source` into minor units of `target`.

    `rates` is units per 1 USD. The float result is rounded exactly once, half up.
    """
    source_rate = _spot_rate(rates, source)
    target_rate = _spot_rate(rates, target)
    amount_in_base = amount / source_rate
    return round_half_up(amount_in_base * target_rate)


def compose_cross_rates(
    source_series: Mapping[str, float],
    target_series: Mapping[str, float],
    start: dt.date,
    end: dt.date,
) -> list[CrossRatePoint]:
    """
    Target units per 1 source unit for each date both EUR-based series have, inside [start, end].

    Dates missing from either side are left out, never interpolated.
    """
    start_key, end_key = start.isoformat(), end.isoformat()
    dates = sorted(d for d in source_series.keys() & target_series.keys() if start_key <= d <= end_key)
    return [CrossRatePoint(date=d, rate=_q_rate(target_series[d] / source_series[d])) for d in dates]


def years_between(start: dt.date, end: dt.date) -> list[int]:
    if end < start:
        return []
    return list(range(start.year, end.year + 1))


def merge_series(*series: Mapping[str, float]) -> dict[str, float]:
    # Yearly series never share a date, so order does not matter.
    merged: dict[str, float] = {}
    for s in series:
        merged.update(s)
    return merged
