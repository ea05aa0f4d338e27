"""Priceline adapter."""
from __future__ import annotations

import logging
from typing import List, Optional

from hotel_genie.hotels.models import HotelCandidate, Provider
from hotel_genie.hotels.normalizer import build_priceline_candidates

from .base import ProviderAdapter, ProviderQuery

logger = logging.getLogger(__name__)

LOCATIONS_PATH = "/v1/hotels/locations"
SEARCH_PATH = "/v1/hotels/search"


class PricelineAdapter(ProviderAdapter):
    provider = Provider.PRICELINE

    async def _search(self, query: ProviderQuery) -> List[HotelCandidate]:
        location_id = await self._resolve_location_id(query)
        if location_id is None:
            logger.info("Priceline has no location matching '%s'", query.name)
            return []
        payload = await self._get_json(
            SEARCH_PATH,
            {
                "location_id": location_id,
                "date_checkin": query.stay.check_in.isoformat(),
                "date_checkout": query.stay.check_out.isoformat(),
                "adults_number": query.adults,
                "rooms_number": query.rooms,
                "sort_order": "HDR",
            },
        )
        return build_priceline_candidates(payload)

    async def _resolve_location_id(self, query: ProviderQuery) -> Optional[str]:
        payload = await self._get_json(LOCATIONS_PATH, {"name": query.name, "search_type": "ALL"})
        entries = payload if isinstance(payload, list) else (payload or {}).get("data") or []
        wanted = "HOTEL" if query.is_hotel_lookup else "CITY"
        fallback: Optional[str] = None
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            if str(entry.get("type", "")).upper() == wanted:
                return str(entry["id"])
            fallback = fallback or str(entry["id"])
        return fallback
