from __future__ import annotations

import datetime as dt

from fxconvert.schemas.common import ApiModel


class StatisticsOut(ApiModel):
    total_conversions: int
    most_converted_currency: str  # "" when nothing was converted yet
    most_converted_currency_amount: int  # minor units of most_converted_currency
    updated_at: dt.datetime


class CrossRatePoint(ApiModel):
    date: str  # YYYY-MM-DD
    rate: float  # target units per 1 source unit


class HealthOut(ApiModel):
    status: str
    timestamp: dt.datetime
    environment: str
