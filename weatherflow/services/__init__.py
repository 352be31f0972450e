"""External service adapters used by node handlers."""

from .open_meteo import Coordinates, GeocodingClient, WeatherClient, DEFAULT_GEOCODING_URL

__all__ = [
    "Coordinates",
    "GeocodingClient",
    "WeatherClient",
    "DEFAULT_GEOCODING_URL",
]
