from __future__ import annotations

import datetime as dt
import logging
import math

import httpx

from fxconvert.core.currencies import HISTORICAL_BASE_CURRENCY
from fxconvert.services.cache import RateCache
from fxconvert.services.cross_rates import merge_series, years_between
from fxconvert.services.upstream import gather_or_cancel, send_get

logger = logging.getLogger(__name__)

# csvdata columns: KEY,FREQ,CURRENCY,CURRENCY_DENOM,EXR_TYPE,EXR_SUFFIX,TIME_PERIOD,OBS_VALUE,...
_DATE_FIELD = 6
_VALUE_FIELD = 7
_MIN_FIELDS = 8


def parse_ecb_csv(text: str) -> dict[str, float]:
    """
    Parse an ECB SDMX csvdata body into {YYYY-MM-DD: units per 1 EUR}.

    The header row is skipped. Rows that are too short or carry a blank/non-numeric value
    (the ECB leaves OBS_VALUE empty on holidays) are skipped rather than failing the year.
    """
    series: dict[str, float] = {}
    lines = text.splitlines()
    for line in lines[1:]:
        fields = line.strip().split(",")
        if len(fields) < _MIN_FIELDS:
            continue
        date_str = fields[_DATE_FIELD].strip()
        raw_value = fields[_VALUE_FIELD].strip()
        if not date_str or not raw_value:
            continue
        try:
            value = float(raw_value)
        except ValueError:
            continue
        if not math.isfinite(value) or value <= 0:
            continue
        series[date_str] = value
    return series


def base_currency_series(year: int) -> dict[str, float]:
    """EUR against itself: 1.0 on every calendar day of the year."""
    day = dt.date(year, 1, 1)
    end = dt.date(year, 12, 31)
    series: dict[str, float] = {}
    while day <= end:
        series[day.isoformat()] = 1.0
        day += dt.timedelta(days=1)
    return series


class HistoricalRateProvider:
    """Daily EUR reference rates from the ECB data API, one cached series per (currency, year)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: RateCache,
        *,
        base_url: str,
        ttl_ms: int,
        cache_key_prefix: str = "timeseries",
    ) -> None:
        self._client = client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._ttl_ms = ttl_ms
        self._cache_key_prefix = cache_key_prefix

    def cache_key(self, currency: str, year: int) -> str:
        return f"{self._cache_key_prefix}:{currency}:{year}"

    async def fetch_yearly_series(self, currency: str, year: int) -> dict[str, float]:
        if currency == HISTORICAL_BASE_CURRENCY:
            return base_currency_series(year)

        key = self.cache_key(currency, year)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached

        url = f"{self._base_url}/D.{currency}.EUR.SP00.A"
        params = {
            "startPeriod": f"{year:04d}-01-01",
            "endPeriod": f"{year:04d}-12-31",
            "format": "csvdata",
        }
        logger.debug("Fetching ECB series currency=%s year=%s", currency, year)
        response = await send_get(self._client, url, params=params)

        if not response.is_success:
            # Many ISO codes have no ECB reference rate; remember that instead of asking again.
            logger.warning(
                "No ECB data currency=%s year=%s status=%s", currency, year, response.status_code
            )
            series: dict[str, float] = {}
        else:
            series = parse_ecb_csv(response.text)
            logger.debug("Parsed %d ECB observations currency=%s year=%s", len(series), currency, year)

        await self._cache.set(key, series, self._ttl_ms)
        return series

    async def fetch_series(self, currency: str, start: dt.date, end: dt.date) -> dict[str, float]:
        """Merged series for every calendar year touched by [start, end]; years are fetched concurrently."""
        years = years_between(start, end)
        parts = await gather_or_cancel(*(self.fetch_yearly_series(currency, y) for y in years))
        return merge_series(*parts)
