from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings import NoDecode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "fxconvert"
    environment: Literal["development", "test", "production"] = Field(default="development")

    database_url: str = Field(default="sqlite+pysqlite:///./fxconvert.db")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_url(cls, v: str | None) -> str | None:
        # Hosted Postgres hands out postgresql://..., force the psycopg (v3) driver.
        if v and v.startswith("postgresql://") and "+" not in v.split("?")[0]:
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v

    # Upstream APIs
    openexchangerates_api_key: str = Field(default="")
    openexchangerates_base_url: str = Field(default="https://openexchangerates.org/api")
    ecb_base_url: str = Field(default="https://data-api.ecb.europa.eu/service/data/EXR")
    api_timeout_seconds: float = Field(default=10.0, gt=0)

    # Rate cache
    cache_backend: Literal["memory", "database"] = Field(default="memory")
    cache_exchange_rates_ttl_ms: int = Field(default=60 * 60 * 1000, gt=0)  # 1 hour
    cache_currencies_ttl_ms: int = Field(default=24 * 60 * 60 * 1000, gt=0)  # 24 hours
    cache_timeseries_ttl_ms: int = Field(default=24 * 60 * 60 * 1000, gt=0)  # 24 hours
    cache_key_exchange_rates: str = "exchange_rates"
    cache_key_currencies: str = "available_currencies"
    cache_key_timeseries_prefix: str = "timeseries"

    # NoDecode prevents pydantic-settings from attempting JSON parsing before validators run.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = Field(default="INFO")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v):  # noqa: ANN001
        return v.upper() if isinstance(v, str) else v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):  # noqa: ANN001
        """
        Accept: string, comma-separated, or JSON list.
        """
        if v is None:
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            return [p.strip() for p in s.split(",") if p.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(x).strip() for x in v if str(x).strip()]
        return v

    @model_validator(mode="after")
    def _require_api_key_in_production(self) -> "Settings":
        if self.environment == "production" and not self.openexchangerates_api_key:
            raise ValueError("OPENEXCHANGERATES_API_KEY is required in production")
        return self


settings = Settings()
