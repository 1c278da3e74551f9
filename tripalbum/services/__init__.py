"""Service layer for business logic."""

from tripalbum.services.city_service import CityService
from tripalbum.services.geocoding_service import GeocodingError, GeocodingService
from tripalbum.services.photo_service import PhotoService
from tripalbum.services.storage_service import StorageService, get_storage_service
from tripalbum.services.trip_service import TripService
from tripalbum.services.user_service import UserService

__all__ = [
    "CityService",
    "GeocodingError",
    "GeocodingService",
    "PhotoService",
    "StorageService",
    "get_storage_service",
    "TripService",
    "UserService",
]
