from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from fxconvert.db.session import Base, engine

# Register every model on Base.metadata.
import fxconvert.models  # noqa: F401
from fxconvert.models.conversion import Conversion

logger = logging.getLogger(__name__)

# (source_amount, source_currency, target_amount, target_currency), amounts in minor units.
SAMPLE_CONVERSIONS: list[tuple[int, str, int, str]] = [
    (20000, "EUR", 480000, "CZK"),
    (50000, "USD", 42500, "EUR"),
    (100000, "GBP", 117000, "EUR"),
    (75000, "USD", 113500, "CAD"),
    (30000, "EUR", 24000, "GBP"),
]


def create_tables() -> None:
    """
    Local-dev helper: create tables without Alembic.
    Production databases are migrated with `alembic upgrade head`.
    """
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))


def seed_sample_conversions(db: Session) -> None:
    db.add_all(
        Conversion(
            source_amount=source_amount,
            source_currency=source_currency,
            target_amount=target_amount,
            target_currency=target_currency,
        )
        for source_amount, source_currency, target_amount, target_currency in SAMPLE_CONVERSIONS
    )
    db.commit()
    logger.info("Seeded %d sample conversions", len(SAMPLE_CONVERSIONS))


def ensure_seeded(db: Session) -> None:
    """Give a fresh dev database some history so the statistics are not empty."""
    exists = db.query(Conversion).first()
    if exists:
        return
    seed_sample_conversions(db)


if __name__ == "__main__":
    from fxconvert.db.session import SessionLocal

    create_tables()
    db = SessionLocal()
    try:
        ensure_seeded(db)
        print("Created tables and seeded sample conversions.")
    finally:
        db.close()
