from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.models.city import City
from tripalbum.models.photo import Photo
from tripalbum.schemas.photo import PhotoCreate, PhotoUpdate


class PhotoService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_city(self, city_id: UUID) -> list[Photo]:
        result = await self.db.execute(
            select(Photo)
            .where(Photo.city_id == city_id)
            .order_by(Photo.taken_at.desc().nulls_last(), Photo.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, city_id: UUID, photo_id: UUID) -> Optional[Photo]:
        result = await self.db.execute(
            select(Photo).where(Photo.id == photo_id, Photo.city_id == city_id)
        )
        return result.scalar_one_or_none()

    async def create(self, city: City, uploaded_by: str, photo_data: PhotoCreate) -> Photo:
        photo = Photo(city_id=city.id, uploaded_by=uploaded_by, **photo_data.model_dump())
        self.db.add(photo)
        await self.db.flush()
        await self.db.refresh(photo)
        return photo

    async def update(self, photo: Photo, photo_data: PhotoUpdate) -> Photo:
        update_data = photo_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(photo, field, value)
        await self.db.flush()
        await self.db.refresh(photo)
        return photo

    async def delete(self, photo: Photo) -> None:
        await self.db.delete(photo)
        await self.db.flush()
