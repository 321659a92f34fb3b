from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fxconvert.db.session import Base


class RateCacheEntry(Base):
    __tablename__ = "rate_cache_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String(120), unique=True, index=True)  # e.g. timeseries:GBP:2024
    value: Mapped[Any] = mapped_column(JSON)
    expires_at: Mapped[int] = mapped_column(BigInteger)  # epoch milliseconds

    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
