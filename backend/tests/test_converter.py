import asyncio
import datetime as dt

import httpx
import pytest

from conftest import ecb_csv, make_service
from fxconvert.core.errors import (
    CurrencyNotFoundError,
    IdenticalCurrencyError,
    InvalidCurrencyCodeError,
    NetworkError,
)
from fxconvert.schemas.conversion import ConversionResult
from fxconvert.services.cache import RateCache, SqlCacheStore

RATES = {"USD": 1, "EUR": 0.85, "GBP": 0.73, "CZK": 23.5, "JPY": 110.5}


def _serve_rates(upstream, rates=RATES):
    upstream.handler = lambda request: httpx.Response(200, json={"rates": rates})


def test_convert_usd_to_eur(service, upstream):
    _serve_rates(upstream)
    result = asyncio.run(service.convert(10050, "USD", "EUR"))
    assert result == ConversionResult(
        source_amount=10050, source_currency="USD", target_amount=8543, target_currency="EUR"
    )


def test_convert_between_non_base_currencies(service, upstream):
    _serve_rates(upstream, {"EUR": 0.85, "GBP": 0.73})
    result = asyncio.run(service.convert(10000, "EUR", "GBP"))
    assert result.target_amount == 8588


def test_repeated_conversions_reuse_cached_table(service, upstream):
    _serve_rates(upstream)

    async def scenario():
        a = await service.convert(10000, "GBP", "CZK")
        b = await service.convert(10000, "GBP", "CZK")
        return a, b

    a, b = asyncio.run(scenario())
    assert a == b
    assert len(upstream.requests) == 1


@pytest.mark.parametrize("code", ["USD", "EUR", "AUD", "XXX"])
def test_identical_currency_rejected_before_fetch(service, upstream, code):
    _serve_rates(upstream)
    with pytest.raises(IdenticalCurrencyError):
        asyncio.run(service.convert(10000, code, code))
    assert upstream.requests == []


@pytest.mark.parametrize("source, target", [("INVALID", "EUR"), ("USD", "INVALID"), ("usd", "EUR"), ("ABC", "ABC")])
def test_invalid_code_rejected_before_fetch(service, upstream, source, target):
    _serve_rates(upstream)
    with pytest.raises(InvalidCurrencyCodeError):
        asyncio.run(service.convert(10000, source, target))
    assert upstream.requests == []


def test_valid_code_missing_from_table(service, upstream):
    _serve_rates(upstream)
    with pytest.raises(CurrencyNotFoundError) as excinfo:
        asyncio.run(service.convert(10000, "USD", "CAD"))
    assert excinfo.value.code == "CAD"


def test_network_error_propagates_unchanged(service, upstream):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    upstream.handler = handler
    with pytest.raises(NetworkError):
        asyncio.run(service.convert(10000, "USD", "EUR"))


def test_historical_cross_rates(service, upstream):
    def handler(request):
        if "D.GBP." in request.url.path:
            return httpx.Response(200, text=ecb_csv("GBP", [("2024-01-01", "1.15"), ("2024-01-02", "1.16")]))
        return httpx.Response(200, text=ecb_csv("USD", [("2024-01-01", "0.92")]))

    upstream.handler = handler
    points = asyncio.run(
        service.get_historical_cross_rates("GBP", "USD", dt.date(2024, 1, 1), dt.date(2024, 1, 2))
    )
    assert [(p.date, p.rate) for p in points] == [("2024-01-01", 0.8)]


def test_historical_multi_year_fetches_each_side_per_year(service, upstream):
    upstream.handler = lambda request: httpx.Response(
        200, text=ecb_csv("GBP", [("2023-12-29", "1.14"), ("2024-01-02", "1.16")])
    )
    asyncio.run(service.get_historical_cross_rates("GBP", "USD", dt.date(2023, 12, 31), dt.date(2024, 1, 2)))
    # 2 currencies x 2 years
    assert len(upstream.requests) == 4


def test_historical_against_eur_uses_synthetic_base(service, upstream):
    upstream.handler = lambda request: httpx.Response(
        200, text=ecb_csv("USD", [("2024-01-02", "1.0956"), ("2024-01-03", "1.0919")])
    )
    points = asyncio.run(
        service.get_historical_cross_rates("EUR", "USD", dt.date(2024, 1, 1), dt.date(2024, 1, 3))
    )
    assert [(p.date, p.rate) for p in points] == [("2024-01-02", 1.0956), ("2024-01-03", 1.0919)]
    assert len(upstream.requests) == 1


def test_historical_eur_to_eur_is_all_ones_without_requests(service, upstream):
    points = asyncio.run(
        service.get_historical_cross_rates("EUR", "EUR", dt.date(2024, 1, 1), dt.date(2024, 1, 3))
    )
    assert [p.date for p in points] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert all(p.rate == 1.0 for p in points)
    assert upstream.requests == []


def test_historical_unsupported_currency_is_empty(service, upstream):
    upstream.handler = lambda request: httpx.Response(404)
    points = asyncio.run(
        service.get_historical_cross_rates("XXX", "EUR", dt.date(2024, 1, 1), dt.date(2024, 1, 2))
    )
    assert points == []


def test_historical_invalid_code(service, upstream):
    with pytest.raises(InvalidCurrencyCodeError):
        asyncio.run(service.get_historical_cross_rates("NOPE", "EUR", dt.date(2024, 1, 1), dt.date(2024, 1, 2)))
    assert upstream.requests == []


def test_historical_reversed_range_is_empty(service, upstream):
    points = asyncio.run(
        service.get_historical_cross_rates("GBP", "USD", dt.date(2024, 1, 2), dt.date(2024, 1, 1))
    )
    assert points == []
    assert upstream.requests == []


def test_historical_same_currency_on_database_cache(upstream, clock, file_session_factory):
    # Both sides fetch and store the same per-year key at the same time.
    service = make_service(upstream.client(), RateCache(SqlCacheStore(file_session_factory), clock=clock))
    upstream.handler = lambda request: httpx.Response(
        200, text=ecb_csv("GBP", [("2024-01-02", "0.86"), ("2024-01-03", "0.87")])
    )
    points = asyncio.run(
        service.get_historical_cross_rates("GBP", "GBP", dt.date(2024, 1, 1), dt.date(2024, 1, 3))
    )
    assert [(p.date, p.rate) for p in points] == [("2024-01-02", 1.0), ("2024-01-03", 1.0)]


def test_historical_failure_cancels_the_other_side(service, upstream):
    cancelled = []

    async def handler(request):
        if "D.GBP." in request.url.path:
            raise httpx.ConnectError("connection refused", request=request)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(request.url.path)
            raise

    upstream.handler = handler

    async def scenario():
        with pytest.raises(NetworkError):
            await service.get_historical_cross_rates("GBP", "USD", dt.date(2024, 1, 1), dt.date(2024, 1, 2))
        # Checked before asyncio.run tears down leftover tasks.
        return list(cancelled)

    assert asyncio.run(scenario()) == ["/service/data/EXR/D.USD.EUR.SP00.A"]
