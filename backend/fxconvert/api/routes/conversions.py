from __future__ import annotations

import anyio.to_thread
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fxconvert.api.deps import get_conversion_service
from fxconvert.db.session import get_db
from fxconvert.schemas.conversion import (
    ConversionCreate,
    ConversionCreatedResponse,
    ConversionOut,
    ConversionResult,
    Currency,
)
from fxconvert.services import conversions as conversion_store
from fxconvert.services.converter import ConversionService

router = APIRouter()


def _store_and_summarize(db: Session, result: ConversionResult) -> ConversionCreatedResponse:
    c = conversion_store.record_conversion(db, result)
    return ConversionCreatedResponse(
        conversion=ConversionOut.model_validate(c),
        statistics=conversion_store.fetch_statistics(db),
    )


@router.get("/currencies", response_model=list[Currency])
async def list_currencies(service: ConversionService = Depends(get_conversion_service)):
    return await service.list_currencies()


@router.post("/", response_model=ConversionCreatedResponse)
async def create_conversion(
    payload: ConversionCreate,
    db: Session = Depends(get_db),
    service: ConversionService = Depends(get_conversion_service),
):
    result = await service.convert(payload.source_amount, payload.source_currency, payload.target_currency)
    # Commit and the statistics query block; keep them off the event loop.
    return await anyio.to_thread.run_sync(_store_and_summarize, db, result)
