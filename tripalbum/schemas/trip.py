from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripalbum.schemas.city import CityDetailResponse


class TripBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class TripCreate(TripBase):
    pass


class TripUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    cover_photo_id: UUID | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Title cannot be null")
        return v


class TripResponse(TripBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    cover_photo_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class TripDetailResponse(TripResponse):
    cities: list[CityDetailResponse] = []


class MessageResponse(BaseModel):
    success: bool = True
