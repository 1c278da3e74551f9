from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from tripalbum.utils.urls import photo_public_url


class PhotoBase(BaseModel):
    storage_key: str = Field(..., min_length=1, max_length=500)
    filename: str = Field(..., min_length=1, max_length=255)
    caption: str | None = None
    taken_at: datetime | None = None
    latitude: Decimal | None = Field(None, ge=-90, le=90)
    longitude: Decimal | None = Field(None, ge=-180, le=180)
    camera_make: str | None = Field(None, max_length=100)
    camera_model: str | None = Field(None, max_length=100)
    width: int | None = Field(None, ge=0)
    height: int | None = Field(None, ge=0)
    size_bytes: int | None = Field(None, ge=0)


class PhotoCreate(PhotoBase):
    pass


class PhotoUpdate(BaseModel):
    caption: str | None = None


class PhotoResponse(PhotoBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    city_id: UUID
    uploaded_by: str | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def url(self) -> str:
        return photo_public_url(self.storage_key)
