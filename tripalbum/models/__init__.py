"""Database models."""

from tripalbum.models.city import City
from tripalbum.models.photo import Photo
from tripalbum.models.trip import Trip
from tripalbum.models.user import User

__all__ = [
    "City",
    "Photo",
    "Trip",
    "User",
]
