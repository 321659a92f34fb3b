from __future__ import annotations

import datetime as dt
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fxconvert.api.router import api_router
from fxconvert.core.config import settings
from fxconvert.core.errors import ConverterError
from fxconvert.core.logging_config import configure_logging
from fxconvert.db.init_db import create_tables, ensure_seeded
from fxconvert.db.session import SessionLocal
from fxconvert.schemas.statistics import HealthOut
from fxconvert.services.cache import MemoryCacheStore, RateCache, SqlCacheStore
from fxconvert.services.converter import build_conversion_service

logger = logging.getLogger(__name__)


def build_rate_cache() -> RateCache:
    if settings.cache_backend == "database":
        return RateCache(SqlCacheStore(SessionLocal))
    return RateCache(MemoryCacheStore())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Local dev runs on SQLite without Alembic.
    if settings.environment != "production" and settings.database_url.startswith("sqlite"):
        create_tables()
        if settings.environment == "development":
            db = SessionLocal()
            try:
                ensure_seeded(db)
            finally:
                db.close()

    cache = build_rate_cache()
    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.api_timeout_seconds)) as client:
        app.state.conversion_service = build_conversion_service(client, cache, settings)
        logger.info(
            "Started %s env=%s cache=%s timeout=%ss",
            settings.app_name,
            settings.environment,
            settings.cache_backend,
            settings.api_timeout_seconds,
        )
        yield
        app.state.conversion_service = None


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    origins = settings.cors_origins or ["http://localhost:3000"]
    logger.info("CORS allow_origins=%s", origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConverterError)
    async def _converter_error_handler(request: Request, exc: ConverterError) -> JSONResponse:
        # Raw upstream detail goes to the log only.
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
        else:
            logger.warning("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message, "kind": exc.kind})

    @app.get("/health", response_model=HealthOut)
    def health():
        return HealthOut(status="ok", timestamp=dt.datetime.now(dt.timezone.utc), environment=settings.environment)

    app.include_router(api_router)
    return app


app = create_app()
