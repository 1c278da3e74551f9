from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from tripalbum.schemas.photo import PhotoResponse
from tripalbum.utils.urls import static_map_url


class CityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    country: str | None = Field(None, max_length=100)
    mapbox_id: str | None = Field(None, max_length=255)
    latitude: Decimal | None = Field(None, ge=-90, le=90)
    longitude: Decimal | None = Field(None, ge=-180, le=180)
    start_date: date | None = None
    end_date: date | None = None


class CityCreate(CityBase):
    pass


class CityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    country: str | None = Field(None, max_length=100)
    mapbox_id: str | None = Field(None, max_length=255)
    latitude: Decimal | None = Field(None, ge=-90, le=90)
    longitude: Decimal | None = Field(None, ge=-180, le=180)
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Name cannot be null")
        return v


class CityResponse(CityBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    trip_id: UUID
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def map_url(self) -> str | None:
        if self.latitude is None or self.longitude is None:
            return None
        return static_map_url(float(self.longitude), float(self.latitude), marker=True)


class CityDetailResponse(CityResponse):
    photos: list[PhotoResponse] = []
