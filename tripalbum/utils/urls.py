from typing import Literal

from tripalbum.config import Settings, get_settings

MapStyle = Literal[
    "streets-v12",
    "outdoors-v12",
    "light-v11",
    "dark-v11",
    "satellite-v9",
    "satellite-streets-v12",
]


def photo_public_url(key: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    return f"{settings.r2_public_url.rstrip('/')}/{key}"


def static_map_url(
    longitude: float,
    latitude: float,
    zoom: int = 11,
    width: int = 400,
    height: int = 300,
    style: MapStyle = "streets-v12",
    retina: bool = True,
    marker: bool = False,
    settings: Settings | None = None,
) -> str | None:
    """Mapbox Static Images URL centred on a point, or None without a token."""
    settings = settings or get_settings()
    if not settings.mapbox_access_token:
        return None

    retina_flag = "@2x" if retina else ""
    overlay = f"pin-s+ef4444({longitude},{latitude})/" if marker else ""
    return (
        f"{settings.mapbox_base_url.rstrip('/')}/styles/v1/mapbox/{style}/static/"
        f"{overlay}{longitude},{latitude},{zoom},0/{width}x{height}{retina_flag}"
        f"?access_token={settings.mapbox_access_token}"
    )
