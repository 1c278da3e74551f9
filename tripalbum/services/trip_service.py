from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tripalbum.models.city import City
from tripalbum.models.trip import Trip
from tripalbum.schemas.trip import TripCreate, TripUpdate


class TripService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_children(self):
        return selectinload(Trip.cities).selectinload(City.photos)

    async def list_all(self) -> list[Trip]:
        """All family trips, newest first, with cities and photos."""
        result = await self.db.execute(
            select(Trip)
            .options(self._with_children())
            .order_by(Trip.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_by_id(self, trip_id: UUID, load_children: bool = False) -> Optional[Trip]:
        query = select(Trip).where(Trip.id == trip_id)

        if load_children:
            query = query.options(self._with_children()).execution_options(
                populate_existing=True
            )

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(self, user_id: str, trip_data: TripCreate) -> Trip:
        trip = Trip(user_id=user_id, **trip_data.model_dump())
        self.db.add(trip)
        await self.db.flush()
        await self.db.refresh(trip)
        return trip

    async def update(self, trip: Trip, trip_data: TripUpdate) -> Trip:
        update_data = trip_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(trip, field, value)
        await self.db.flush()
        await self.db.refresh(trip)
        return trip

    async def delete(self, trip: Trip) -> list[str]:
        """Delete a trip with its cities and photos.

        Returns the storage keys of the removed photos so the caller can clean
        up the bucket.
        """
        trip = await self.get_by_id(trip.id, load_children=True)
        storage_keys = [photo.storage_key for city in trip.cities for photo in city.photos]
        await self.db.delete(trip)
        await self.db.flush()
        return storage_keys
