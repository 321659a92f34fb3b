from __future__ import annotations

import datetime as dt
import logging

import httpx

from fxconvert.core.config import Settings
from fxconvert.core.currencies import is_valid_code
from fxconvert.core.errors import IdenticalCurrencyError, InvalidCurrencyCodeError
from fxconvert.schemas.conversion import ConversionResult, Currency
from fxconvert.schemas.statistics import CrossRatePoint
from fxconvert.services.cache import RateCache
from fxconvert.services.cross_rates import compose_cross_rates, convert_amount
from fxconvert.services.currency_catalog import CurrencyCatalogProvider
from fxconvert.services.ecb_history import HistoricalRateProvider
from fxconvert.services.spot_rates import SpotRateProvider
from fxconvert.services.upstream import gather_or_cancel

logger = logging.getLogger(__name__)


def _require_valid(*codes: str) -> None:
    for code in codes:
        if not is_valid_code(code):
            raise InvalidCurrencyCodeError(code)


class ConversionService:
    """Entry point used by the API layer; validation happens before any upstream call."""

    def __init__(
        self,
        spot_rates: SpotRateProvider,
        catalog: CurrencyCatalogProvider,
        history: HistoricalRateProvider,
    ) -> None:
        self.spot_rates = spot_rates
        self.catalog = catalog
        self.history = history

    async def convert(self, source_amount: int, source_currency: str, target_currency: str) -> ConversionResult:
        _require_valid(source_currency, target_currency)
        if source_currency == target_currency:
            raise IdenticalCurrencyError(source_currency)

        rates = await self.spot_rates.fetch_exchange_rates()
        target_amount = convert_amount(rates, source_currency, target_currency, source_amount)
        logger.info(
            "Converted %s %s -> %s %s", source_amount, source_currency, target_amount, target_currency
        )
        return ConversionResult(
            source_amount=source_amount,
            source_currency=source_currency,
            target_amount=target_amount,
            target_currency=target_currency,
        )

    async def list_currencies(self) -> list[Currency]:
        return await self.catalog.list_currencies()

    async def get_historical_cross_rates(
        self, source_currency: str, target_currency: str, start: dt.date, end: dt.date
    ) -> list[CrossRatePoint]:
        _require_valid(source_currency, target_currency)
        if end < start:
            return []
        source_series, target_series = await gather_or_cancel(
            self.history.fetch_series(source_currency, start, end),
            self.history.fetch_series(target_currency, start, end),
        )
        points = compose_cross_rates(source_series, target_series, start, end)
        logger.debug(
            "Cross rates %s/%s %s..%s: %d points", source_currency, target_currency, start, end, len(points)
        )
        return points


def build_conversion_service(client: httpx.AsyncClient, cache: RateCache, settings: Settings) -> ConversionService:
    return ConversionService(
        spot_rates=SpotRateProvider(
            client,
            cache,
            base_url=settings.openexchangerates_base_url,
            api_key=settings.openexchangerates_api_key,
            ttl_ms=settings.cache_exchange_rates_ttl_ms,
            cache_key=settings.cache_key_exchange_rates,
        ),
        catalog=CurrencyCatalogProvider(
            client,
            cache,
            base_url=settings.openexchangerates_base_url,
            api_key=settings.openexchangerates_api_key,
            ttl_ms=settings.cache_currencies_ttl_ms,
            cache_key=settings.cache_key_currencies,
        ),
        history=HistoricalRateProvider(
            client,
            cache,
            base_url=settings.ecb_base_url,
            ttl_ms=settings.cache_timeseries_ttl_ms,
            cache_key_prefix=settings.cache_key_timeseries_prefix,
        ),
    )
