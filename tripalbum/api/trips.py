import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.auth.dependencies import CurrentSession
from tripalbum.database import get_db
from tripalbum.models.trip import Trip
from tripalbum.schemas.trip import (
    MessageResponse,
    TripCreate,
    TripDetailResponse,
    TripResponse,
    TripUpdate,
)
from tripalbum.services.storage_service import StorageService, get_optional_storage_service
from tripalbum.services.trip_service import TripService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["Trips"])


async def get_trip_or_404(
    trip_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Trip:
    trip = await TripService(db).get_by_id(trip_id)
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found",
        )
    return trip


StorageDep = Annotated[StorageService | None, Depends(get_optional_storage_service)]


async def remove_stored_photos(storage: StorageService | None, keys: list[str]) -> None:
    """Drop photo objects from storage after their rows are gone; never fails."""
    if not keys:
        return
    if storage is None:
        logger.warning(f"Storage not configured, leaving {len(keys)} photo objects behind")
        return
    await storage.delete_objects(keys)


@router.get("", response_model=list[TripDetailResponse])
async def list_trips(
    session: CurrentSession,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[TripDetailResponse]:
    trips = await TripService(db).list_all()
    return [TripDetailResponse.model_validate(trip) for trip in trips]


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    session: CurrentSession,
    trip_data: TripCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TripResponse:
    trip = await TripService(db).create(session.user_id, trip_data)
    await db.commit()
    logger.info(f"User {session.user_id} created trip {trip.id}")
    return TripResponse.model_validate(trip)


@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    session: CurrentSession,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TripDetailResponse:
    trip = await TripService(db).get_by_id(trip.id, load_children=True)
    return TripDetailResponse.model_validate(trip)


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    session: CurrentSession,
    trip_data: TripUpdate,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TripResponse:
    trip = await TripService(db).update(trip, trip_data)
    await db.commit()
    return TripResponse.model_validate(trip)


@router.delete("/{trip_id}", response_model=MessageResponse)
async def delete_trip(
    session: CurrentSession,
    trip: Annotated[Trip, Depends(get_trip_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: StorageDep,
) -> MessageResponse:
    trip_id = trip.id
    storage_keys = await TripService(db).delete(trip)
    await db.commit()
    logger.info(f"User {session.user_id} deleted trip {trip_id}")

    await remove_stored_photos(storage, storage_keys)
    return MessageResponse()
