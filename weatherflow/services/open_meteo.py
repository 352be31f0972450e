"""Open-Meteo geocoding and current-weather clients."""

from dataclasses import dataclass
from typing import List, Optional

import requests

from ..core.exceptions import (
    GeocodingRequestError,
    ResponseDecodeError,
    WeatherRequestError,
    WeatherStatusError,
)
from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"


@dataclass(frozen=True)
class Coordinates:
    """A geocoding match."""
    latitude: float
    longitude: float


class GeocodingClient:
    """Resolves free-text place names to coordinates.

    Without an injected session every call goes through ``requests.get``,
    which opens its own session, so one client can serve concurrent requests.
    An injected ``requests.Session`` is used as-is and must not be shared
    across threads.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GEOCODING_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None
    ):
        self.base_url = base_url
        self.session = session
        self.timeout = timeout

    def search(self, name: str) -> List[Coordinates]:
        """
        Look up a place name.

        Args:
            name: Free-text place name

        Returns:
            Matches in provider order; empty when the provider knows no match

        Raises:
            GeocodingRequestError: If the request cannot be completed
            ResponseDecodeError: If the response body is not the expected JSON
        """
        logger.debug(f"Geocoding place name: {name}")

        try:
            response = (self.session or requests).get(
                self.base_url,
                params={"name": name, "count": 1},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise GeocodingRequestError(str(e)) from e

        try:
            payload = response.json()
            results = payload.get("results") or []
            return [
                Coordinates(latitude=float(item["latitude"]), longitude=float(item["longitude"]))
                for item in results
            ]
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise ResponseDecodeError(service="geocoding") from e


class WeatherClient:
    """Fetches the current temperature from a fully-substituted endpoint URL.

    Session handling matches ``GeocodingClient``.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout

    def current_temperature(self, url: str) -> float:
        """
        Fetch the current temperature reading.

        Raises:
            WeatherRequestError: If the request cannot be completed
            WeatherStatusError: If the service answers with a non-200 status
            ResponseDecodeError: If the response body is not the expected JSON
        """
        logger.debug(f"Fetching weather from {url}")

        try:
            response = (self.session or requests).get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise WeatherRequestError(str(e)) from e

        if response.status_code != 200:
            raise WeatherStatusError(response.status_code)

        try:
            payload = response.json()
            return float(payload["current_weather"]["temperature"])
        except (ValueError, TypeError, KeyError) as e:
            raise ResponseDecodeError(service="weather") from e
