from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tripalbum.auth.dependencies import CurrentSession
from tripalbum.schemas.geocode import Place
from tripalbum.services.geocoding_service import (
    GeocodingError,
    GeocodingNotConfiguredError,
    GeocodingService,
)

router = APIRouter(tags=["Geocoding"])


def get_geocoding_service() -> GeocodingService:
    return GeocodingService()


@router.get("/geocode", response_model=list[Place])
async def geocode(
    session: CurrentSession,
    geocoder: Annotated[GeocodingService, Depends(get_geocoding_service)],
    q: str | None = None,
) -> list[Place]:
    if not q:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter 'q' is required",
        )

    try:
        return await geocoder.search(q)
    except GeocodingNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from None
    except GeocodingError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        ) from None
