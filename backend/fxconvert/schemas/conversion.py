from __future__ import annotations

import datetime as dt

from pydantic import Field

from fxconvert.schemas.common import ApiModel, CurrencyCode
from fxconvert.schemas.statistics import StatisticsOut

# Largest amount a user may type, in major units; requests carry minor units (cents).
MAX_AMOUNT_DISPLAY = 100_000_000_000
MAX_AMOUNT_CENTS = MAX_AMOUNT_DISPLAY * 100


class Currency(ApiModel):
    code: str
    name: str


class ConversionCreate(ApiModel):
    source_amount: int = Field(gt=0, le=MAX_AMOUNT_CENTS, strict=True)
    source_currency: CurrencyCode
    target_currency: CurrencyCode


class ConversionResult(ApiModel):
    source_amount: int
    source_currency: str
    target_amount: int
    target_currency: str


class ConversionOut(ConversionResult):
    id: int
    created_at: dt.datetime


class ConversionCreatedResponse(ApiModel):
    conversion: ConversionOut
    statistics: StatisticsOut
