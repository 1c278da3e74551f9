import logging
from urllib.parse import quote

import httpx

from tripalbum.config import Settings, get_settings
from tripalbum.schemas.geocode import Place

logger = logging.getLogger(__name__)

PLACE_TYPES = "place,locality,neighborhood"
RESULT_LIMIT = 5


class GeocodingNotConfiguredError(Exception):
    pass


class GeocodingError(Exception):
    pass


def _parse_feature(feature: dict) -> Place:
    country = next(
        (c for c in feature.get("context", []) if c.get("id", "").startswith("country.")),
        None,
    )
    longitude, latitude = feature["center"][:2]
    short_code = country.get("short_code") if country else None
    return Place(
        id=feature["id"],
        name=feature["text"],
        full_name=feature["place_name"],
        country=country.get("text") if country else None,
        country_code=short_code.upper() if short_code else None,
        longitude=longitude,
        latitude=latitude,
    )


class GeocodingService:
    """Place search backed by the Mapbox Geocoding API."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self.base_url = settings.mapbox_base_url.rstrip("/")
        self.access_token = settings.mapbox_access_token
        self._transport = transport

    async def search(self, query: str) -> list[Place]:
        """
        Search for cities, towns and neighbourhoods matching a free-text query.

        Raises:
            GeocodingNotConfiguredError: If no Mapbox token is set
            GeocodingError: If the Mapbox request fails
        """
        if not self.access_token:
            raise GeocodingNotConfiguredError("Mapbox is not configured")

        params = {
            "access_token": self.access_token,
            "types": PLACE_TYPES,
            "limit": RESULT_LIMIT,
        }
        url = f"{self.base_url}/geocoding/v5/mapbox.places/{quote(query, safe='')}.json"

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Geocoding API error: {e}")
                raise GeocodingError("Failed to search for places") from e

        try:
            return [_parse_feature(feature) for feature in data.get("features", [])]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected geocoding response: {e}")
            raise GeocodingError("Failed to search for places") from e
