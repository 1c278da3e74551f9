from fastapi import APIRouter

from tripalbum.api.auth import session_router
from tripalbum.api.cities import router as cities_router
from tripalbum.api.geocode import router as geocode_router
from tripalbum.api.health import router as health_router
from tripalbum.api.photos import router as photos_router
from tripalbum.api.trips import router as trips_router
from tripalbum.api.uploads import router as uploads_router
from tripalbum.api.users import router as users_router

api_router = APIRouter()

# Include sub-routers
api_router.include_router(health_router, tags=["health"])
api_router.include_router(session_router)
api_router.include_router(users_router)
api_router.include_router(trips_router)
api_router.include_router(cities_router)
api_router.include_router(photos_router)
api_router.include_router(uploads_router)
api_router.include_router(geocode_router)
