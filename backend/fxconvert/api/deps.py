from __future__ import annotations

from fastapi import HTTPException, Request, status

from fxconvert.services.converter import ConversionService


def get_conversion_service(request: Request) -> ConversionService:
    """The service is built in the app lifespan, together with its HTTP client and cache."""
    service = getattr(request.app.state, "conversion_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up")
    return service
