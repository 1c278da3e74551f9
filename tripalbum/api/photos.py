import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.api.cities import get_city_or_404
from tripalbum.api.trips import StorageDep, remove_stored_photos
from tripalbum.auth.dependencies import CurrentSession
from tripalbum.database import get_db
from tripalbum.models.city import City
from tripalbum.models.photo import Photo
from tripalbum.schemas.photo import PhotoCreate, PhotoResponse, PhotoUpdate
from tripalbum.schemas.trip import MessageResponse
from tripalbum.services.photo_service import PhotoService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips/{trip_id}/cities/{city_id}/photos", tags=["Photos"])


async def get_photo_or_404(
    photo_id: UUID,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Photo:
    photo = await PhotoService(db).get_by_id(city.id, photo_id)
    if not photo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )
    return photo


@router.get("", response_model=list[PhotoResponse])
async def list_photos(
    session: CurrentSession,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[PhotoResponse]:
    photos = await PhotoService(db).list_for_city(city.id)
    return [PhotoResponse.model_validate(photo) for photo in photos]


@router.post("", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def create_photo(
    session: CurrentSession,
    photo_data: PhotoCreate,
    city: Annotated[City, Depends(get_city_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PhotoResponse:
    """Record a photo the browser has already uploaded to storage."""
    photo = await PhotoService(db).create(city, session.user_id, photo_data)
    await db.commit()
    return PhotoResponse.model_validate(photo)


@router.get("/{photo_id}", response_model=PhotoResponse)
async def get_photo(
    session: CurrentSession,
    photo: Annotated[Photo, Depends(get_photo_or_404)],
) -> PhotoResponse:
    return PhotoResponse.model_validate(photo)


@router.patch("/{photo_id}", response_model=PhotoResponse)
async def update_photo(
    session: CurrentSession,
    photo_data: PhotoUpdate,
    photo: Annotated[Photo, Depends(get_photo_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PhotoResponse:
    photo = await PhotoService(db).update(photo, photo_data)
    await db.commit()
    return PhotoResponse.model_validate(photo)


@router.delete("/{photo_id}", response_model=MessageResponse)
async def delete_photo(
    session: CurrentSession,
    photo: Annotated[Photo, Depends(get_photo_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: StorageDep,
) -> MessageResponse:
    photo_id, storage_key = photo.id, photo.storage_key
    await PhotoService(db).delete(photo)
    await db.commit()
    logger.info(f"User {session.user_id} deleted photo {photo_id}")

    await remove_stored_photos(storage, [storage_key])
    return MessageResponse()
