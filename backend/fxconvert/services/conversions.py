"""Conversion history and the aggregate statistics derived from it."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import Float, cast, func
from sqlalchemy.orm import Session

from fxconvert.models.conversion import Conversion
from fxconvert.schemas.conversion import ConversionResult
from fxconvert.schemas.statistics import StatisticsOut
from fxconvert.services.cross_rates import round_half_up

logger = logging.getLogger(__name__)


def record_conversion(db: Session, result: ConversionResult) -> Conversion:
    c = Conversion(
        source_amount=result.source_amount,
        source_currency=result.source_currency,
        target_amount=result.target_amount,
        target_currency=result.target_currency,
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    logger.info("Stored conversion id=%s", c.id)
    return c


def fetch_statistics(db: Session) -> StatisticsOut:
    """
    Computed on read from the indexed conversions table:
    - total number of conversions
    - the target currency converted to most often, with the sum of its target amounts
    """
    total = db.query(func.count(Conversion.id)).scalar() or 0

    conversion_count = func.count(Conversion.id)
    # Sum as float so huge minor-unit totals cannot overflow a 64-bit integer.
    row = (
        db.query(
            Conversion.target_currency,
            conversion_count.label("count"),
            func.sum(cast(Conversion.target_amount, Float)).label("total"),
        )
        .group_by(Conversion.target_currency)
        .order_by(conversion_count.desc(), Conversion.target_currency)
        .first()
    )

    most_converted = row.target_currency if row else ""
    amount = round_half_up(float(row.total)) if row and row.total else 0
    logger.debug("Statistics total=%s most_converted=%s amount=%s", total, most_converted, amount)
    return StatisticsOut(
        total_conversions=total,
        most_converted_currency=most_converted,
        most_converted_currency_amount=amount,
        updated_at=dt.datetime.now(dt.timezone.utc),
    )
