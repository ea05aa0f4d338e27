"""Booking.com adapter (RapidAPI ``booking-com`` proxy)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from hotel_genie.core.errors import UpstreamProviderError
from hotel_genie.hotels.models import HotelCandidate, Provider
from hotel_genie.hotels.normalizer import build_booking_candidates

from .base import ProviderAdapter, ProviderQuery

logger = logging.getLogger(__name__)

LOCATIONS_PATH = "/v1/hotels/locations"
SEARCH_PATH = "/v1/hotels/search"
SEARCH_BY_COORDINATES_PATH = "/v1/hotels/search-by-coordinates"


class BookingAdapter(ProviderAdapter):
    provider = Provider.BOOKING

    def _common_params(self, query: ProviderQuery) -> Dict[str, Any]:
        return {
            "checkin_date": query.stay.check_in.isoformat(),
            "checkout_date": query.stay.check_out.isoformat(),
            "adults_number": query.adults,
            "room_number": query.rooms,
            "order_by": "popularity",
            "filter_by_currency": query.currency,
            "locale": query.locale,
            "units": "metric",
            "include_adjacency": "true",
        }

    async def _search(self, query: ProviderQuery) -> List[HotelCandidate]:
        params = self._common_params(query)
        if query.coordinates is not None:
            params.update(
                latitude=query.coordinates.latitude,
                longitude=query.coordinates.longitude,
            )
            payload = await self._get_json(SEARCH_BY_COORDINATES_PATH, params)
            return build_booking_candidates(payload)

        destination = await self._resolve_destination(query)
        if destination is None:
            logger.info("Booking.com has no destination matching '%s'", query.name)
            return []
        dest_id, dest_type = destination
        params.update(dest_id=dest_id, dest_type=dest_type)
        payload = await self._get_json(SEARCH_PATH, params)
        return build_booking_candidates(payload)

    async def _resolve_destination(self, query: ProviderQuery) -> Optional[tuple[str, str]]:
        payload = await self._get_json(LOCATIONS_PATH, {"name": query.name, "locale": query.locale})
        if not isinstance(payload, list):
            raise UpstreamProviderError(self.provider.value, "locations response is not a list")
        for entry in payload:
            if isinstance(entry, dict) and entry.get("dest_id"):
                return str(entry["dest_id"]), str(entry.get("dest_type") or "city")
        return None
