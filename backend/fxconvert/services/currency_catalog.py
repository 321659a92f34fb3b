from __future__ import annotations

import logging

import httpx
from pydantic import TypeAdapter, ValidationError

from fxconvert.core.currencies import is_valid_code
from fxconvert.core.errors import MalformedResponseError
from fxconvert.schemas.conversion import Currency
from fxconvert.services.cache import RateCache
from fxconvert.services.upstream import get_json

logger = logging.getLogger(__name__)

_catalog_adapter = TypeAdapter(dict[str, str])


def parse_currency_catalog(data: object) -> list[Currency]:
    """
    Turn the code -> display name map into Currency rows.

    Codes outside ISO 4217 (e.g. crypto tickers some plans include) are dropped, not an error.
    """
    try:
        raw = _catalog_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(f"currency catalog is not a code -> name object ({e.error_count()} errors)") from e
    currencies = [Currency(code=code, name=name) for code, name in sorted(raw.items()) if is_valid_code(code)]
    dropped = len(raw) - len(currencies)
    if dropped:
        logger.debug("Dropped %d unrecognized currency codes from catalog", dropped)
    return currencies


class CurrencyCatalogProvider:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: RateCache,
        *,
        base_url: str,
        api_key: str,
        ttl_ms: int,
        cache_key: str = "available_currencies",
    ) -> None:
        self._client = client
        self._cache = cache
        self._url = f"{base_url.rstrip('/')}/currencies.json"
        self._api_key = api_key
        self._ttl_ms = ttl_ms
        self._cache_key = cache_key

    async def list_currencies(self) -> list[Currency]:
        cached = await self._cache.get(self._cache_key)
        if cached is not None:
            return [Currency.model_validate(c) for c in cached]

        logger.info("Fetching currency catalog")
        data = await get_json(self._client, self._url, params={"app_id": self._api_key})
        currencies = parse_currency_catalog(data)
        # Plain dicts so the SQL store can serialize them.
        await self._cache.set(self._cache_key, [c.model_dump() for c in currencies], self._ttl_ms)
        return currencies
