from pydantic import BaseModel


class Place(BaseModel):
    id: str
    name: str
    full_name: str
    country: str | None = None
    country_code: str | None = None
    longitude: float
    latitude: float
