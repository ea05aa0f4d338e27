"""TravelAdvisor (TripAdvisor) adapter; ratings arrive on a 0-5 scale."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from hotel_genie.hotels.models import HotelCandidate, Provider
from hotel_genie.hotels.normalizer import build_travel_advisor_candidates

from .base import ProviderAdapter, ProviderQuery

logger = logging.getLogger(__name__)

LOCATION_SEARCH_PATH = "/locations/search"
HOTELS_LIST_PATH = "/hotels/list"
HOTELS_BY_LATLNG_PATH = "/hotels/list-by-latlng"


class TravelAdvisorAdapter(ProviderAdapter):
    provider = Provider.TRAVEL_ADVISOR

    def _common_params(self, query: ProviderQuery) -> Dict[str, Any]:
        return {
            "adults": query.adults,
            "rooms": query.rooms,
            "checkin": query.stay.check_in.isoformat(),
            "nights": query.stay.nights,
            "currency": query.currency,
            "lang": "en_US",
            "offset": 0,
            "limit": 30,
            "sort": "recommended",
        }

    async def _search(self, query: ProviderQuery) -> List[HotelCandidate]:
        params = self._common_params(query)
        if query.coordinates is not None:
            params.update(latitude=query.coordinates.latitude, longitude=query.coordinates.longitude)
            payload = await self._get_json(HOTELS_BY_LATLNG_PATH, params)
        else:
            location_id = await self._resolve_location_id(query)
            if location_id is None:
                logger.info("TravelAdvisor has no location matching '%s'", query.name)
                return []
            params["location_id"] = location_id
            payload = await self._get_json(HOTELS_LIST_PATH, params)

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            raise ValueError(f"error payload: {errors}")
        return build_travel_advisor_candidates(payload, currency=query.currency)

    async def _resolve_location_id(self, query: ProviderQuery) -> Optional[str]:
        payload = await self._get_json(
            LOCATION_SEARCH_PATH,
            {"query": query.name, "limit": 1, "lang": "en_US", "currency": query.currency},
        )
        for entry in (payload or {}).get("data") or []:
            result = entry.get("result_object") if isinstance(entry, dict) else None
            if isinstance(result, dict) and result.get("location_id"):
                return str(result["location_id"])
        return None
