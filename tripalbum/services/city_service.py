from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tripalbum.models.city import City
from tripalbum.models.trip import Trip
from tripalbum.schemas.city import CityCreate, CityUpdate


class CityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_trip(self, trip_id: UUID) -> list[City]:
        result = await self.db.execute(
            select(City)
            .where(City.trip_id == trip_id)
            .options(selectinload(City.photos))
            .order_by(City.start_date.desc().nulls_last(), City.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_by_id(
        self, trip_id: UUID, city_id: UUID, load_photos: bool = False
    ) -> Optional[City]:
        query = select(City).where(City.id == city_id, City.trip_id == trip_id)

        if load_photos:
            query = query.options(selectinload(City.photos)).execution_options(
                populate_existing=True
            )

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, trip: Trip, city_data: CityCreate) -> City:
        city = City(trip_id=trip.id, **city_data.model_dump())
        self.db.add(city)
        await self.db.flush()
        await self.db.refresh(city)
        return city

    async def update(self, city: City, city_data: CityUpdate) -> City:
        update_data = city_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(city, field, value)
        await self.db.flush()
        await self.db.refresh(city)
        return city

    async def delete(self, city: City) -> list[str]:
        """Delete a city with its photos, returning the photos' storage keys."""
        city = await self.get_by_id(city.trip_id, city.id, load_photos=True)
        storage_keys = [photo.storage_key for photo in city.photos]
        await self.db.delete(city)
        await self.db.flush()
        return storage_keys
