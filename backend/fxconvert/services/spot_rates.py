from __future__ import annotations

import logging
from typing import Annotated

import httpx
from pydantic import BaseModel, Field, ValidationError

from fxconvert.core.errors import MalformedResponseError
from fxconvert.services.cache import RateCache
from fxconvert.services.upstream import get_json

logger = logging.getLogger(__name__)

Rate = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class LatestRatesPayload(BaseModel):
    """`latest.json` body; only the rates table matters (base is always USD)."""

    rates: dict[str, Rate]


def parse_latest_rates(data: object) -> dict[str, float]:
    try:
        return dict(LatestRatesPayload.model_validate(data).rates)
    except ValidationError as e:
        raise MalformedResponseError(f"no usable rates field ({e.error_count()} validation errors)") from e


class SpotRateProvider:
    """USD-based spot rates from Open Exchange Rates, cached as one table."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: RateCache,
        *,
        base_url: str,
        api_key: str,
        ttl_ms: int,
        cache_key: str = "exchange_rates",
    ) -> None:
        self._client = client
        self._cache = cache
        self._url = f"{base_url.rstrip('/')}/latest.json"
        self._api_key = api_key
        self._ttl_ms = ttl_ms
        self._cache_key = cache_key

    async def fetch_exchange_rates(self) -> dict[str, float]:
        cached = await self._cache.get(self._cache_key)
        if cached is not None:
            return cached

        logger.info("Fetching fresh exchange rates")
        data = await get_json(self._client, self._url, params={"app_id": self._api_key})
        rates = parse_latest_rates(data)
        await self._cache.set(self._cache_key, rates, self._ttl_ms)
        logger.debug("Cached %d exchange rates for %d ms", len(rates), self._ttl_ms)
        return rates
