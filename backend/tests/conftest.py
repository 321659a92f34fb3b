"""Pytest fixtures for fxconvert tests."""

import os

os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fxconvert.db.session import Base
from fxconvert.services.cache import MemoryCacheStore, RateCache

# Ensure all models are loaded for create_all
import fxconvert.models  # noqa: F401

OXR_BASE = "https://oxr.test/api"
ECB_BASE = "https://ecb.test/service/data/EXR"


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(scope="function")
def session_factory():
    """In-memory SQLite shared across threads (the SQL cache store works from a worker thread)."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed SQLite so every worker thread gets its own connection."""
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'fxconvert.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Fresh cache per test so no state leaks between tests."""
    return RateCache(MemoryCacheStore(), clock=clock)


class Upstream:
    """Records requests and answers them with a handler chosen by the test."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(500, text="no handler")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self, timeout: float = 5.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self), timeout=timeout)


@pytest.fixture
def upstream():
    return Upstream()


def ecb_csv(currency: str, rows: list[tuple[str, str]]) -> str:
    header = "KEY,FREQ,CURRENCY,CURRENCY_DENOM,EXR_TYPE,EXR_SUFFIX,TIME_PERIOD,OBS_VALUE,OBS_STATUS,OBS_CONF,OBS_PRE_BREAK,OBS_COM"
    lines = [header] + [f"D.{currency}.EUR.SP00.A,D,{currency},EUR,SP00,A,{d},{v},A,F,," for d, v in rows]
    return "\n".join(lines) + "\n"


def make_service(client: httpx.AsyncClient, cache: RateCache):
    from fxconvert.services.converter import ConversionService
    from fxconvert.services.currency_catalog import CurrencyCatalogProvider
    from fxconvert.services.ecb_history import HistoricalRateProvider
    from fxconvert.services.spot_rates import SpotRateProvider

    return ConversionService(
        spot_rates=SpotRateProvider(client, cache, base_url=OXR_BASE, api_key="test-api-key", ttl_ms=3_600_000),
        catalog=CurrencyCatalogProvider(client, cache, base_url=OXR_BASE, api_key="test-api-key", ttl_ms=86_400_000),
        history=HistoricalRateProvider(client, cache, base_url=ECB_BASE, ttl_ms=86_400_000),
    )


@pytest.fixture
def service(upstream, cache):
    return make_service(upstream.client(), cache)
