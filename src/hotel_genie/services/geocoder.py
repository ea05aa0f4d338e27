"""Client for Booking.com destination lookups used as the geocoder."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx

from hotel_genie.hotels.models import Coordinates

logger = logging.getLogger(__name__)

LOCATIONS_PATH = "/v1/hotels/locations"


@dataclass(frozen=True)
class GeocodeResult:
    """First destination match: raw destination type, display name and position."""

    type: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_values(self.latitude, self.longitude)


class Geocoder(Protocol):
    async def geocode(self, text: str) -> Optional[GeocodeResult]:
        """Return the best match for ``text`` or ``None`` when nothing matches."""


class BookingGeocoder:
    """Thin wrapper around the Booking.com locations endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        host: str,
        api_key: Optional[str],
        locale: str = "en-gb",
        timeout: float = 8.0,
    ) -> None:
        self._client = client
        self._base_url = f"https://{host}"
        self._headers: Dict[str, str] = {"X-RapidAPI-Host": host, "Accept": "application/json"}
        if api_key:
            self._headers["X-RapidAPI-Key"] = api_key
        self._locale = locale
        self._timeout = timeout

    async def lookup(self, text: str) -> Any:
        logger.debug("Destination lookup query='%s'", text)
        response = await self._client.get(
            f"{self._base_url}{LOCATIONS_PATH}",
            params={"name": text, "locale": self._locale},
            headers=self._headers,
            timeout=self._timeout,
        )
        response.raise_for_status()
        return response.json()

    async def geocode(self, text: str) -> Optional[GeocodeResult]:
        payload = await self.lookup(text)
        if not isinstance(payload, list) or not payload:
            logger.info("No destination found for '%s'", text)
            return None
        first = payload[0]
        if not isinstance(first, dict):
            return None
        result = GeocodeResult(
            type=str(first.get("dest_type") or "unknown"),
            name=str(first.get("name") or first.get("label") or text),
            latitude=first.get("latitude"),
            longitude=first.get("longitude"),
        )
        logger.info("Geocoded '%s' as %s '%s'", text, result.type, result.name)
        return result
