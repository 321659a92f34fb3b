from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fxconvert.api.deps import get_conversion_service
from fxconvert.db.session import get_db
from fxconvert.schemas.statistics import CrossRatePoint, StatisticsOut
from fxconvert.services.conversions import fetch_statistics
from fxconvert.services.converter import ConversionService

router = APIRouter()


@router.get("/", response_model=StatisticsOut)
def get_statistics(db: Session = Depends(get_db)):
    return fetch_statistics(db)


@router.get("/timeseries", response_model=list[CrossRatePoint])
async def get_timeseries(
    source_currency: str = Query(..., alias="sourceCurrency", min_length=3, max_length=3),
    target_currency: str = Query(..., alias="targetCurrency", min_length=3, max_length=3),
    days: int = Query(default=30, ge=1, le=365),
    service: ConversionService = Depends(get_conversion_service),
):
    """Historical cross rates for the last `days` days; empty when the ECB has no data for the pair."""
    end_date = dt.date.today()
    start_date = end_date - dt.timedelta(days=days)
    return await service.get_historical_cross_rates(
        source_currency.upper(), target_currency.upper(), start_date, end_date
    )
