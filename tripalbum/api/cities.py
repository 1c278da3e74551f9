from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.api.trips import StorageDep, get_trip_or_404, remove_stored_photos
from tripalbum.auth.dependencies import CurrentSession
from tripalbum.database import get_db
from tripalbum.models.city import City
from tripalbum.models.trip import Trip
from tripalbum.schemas.city import CityCreate, CityDetailResponse, CityResponse, CityUpdate
from tripalbum.schemas.trip import MessageResponse
from tripalbum.services.city_service import CityService

router = APIRouter(prefix="/trips/{trip_id}/cities", tags=["Cities"])


async def get_city_or_404(
    city_id: UUID,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> City:
    city = await CityService(db).get_by_id(trip.id, city_id)
    if not city:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="City not found",
        )
    return city


@router.get("", response_model=list[CityDetailResponse])
async def list_cities(
    session: CurrentSession,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CityDetailResponse]:
    cities = await CityService(db).list_for_trip(trip.id)
    return [CityDetailResponse.model_validate(city) for city in cities]


@router.post("", response_model=CityResponse, status_code=status.HTTP_201_CREATED)
async def create_city(
    session: CurrentSession,
    city_data: CityCreate,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CityResponse:
    city = await CityService(db).create(trip, city_data)
    await db.commit()
    return CityResponse.model_validate(city)


@router.get("/{city_id}", response_model=CityDetailResponse)
async def get_city(
    session: CurrentSession,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CityDetailResponse:
    city = await CityService(db).get_by_id(city.trip_id, city.id, load_photos=True)
    return CityDetailResponse.model_validate(city)


@router.patch("/{city_id}", response_model=CityResponse)
async def update_city(
    session: CurrentSession,
    city_data: CityUpdate,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CityResponse:
    city = await CityService(db).update(city, city_data)
    await db.commit()
    return CityResponse.model_validate(city)


@router.delete("/{city_id}", response_model=MessageResponse)
async def delete_city(
    session: CurrentSession,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: StorageDep,
) -> MessageResponse:
    storage_keys = await CityService(db).delete(city)
    await db.commit()

    await remove_stored_photos(storage, storage_keys)
    return MessageResponse()
