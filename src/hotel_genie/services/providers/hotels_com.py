"""Hotels.com / Expedia adapter; search is always region based."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from hotel_genie.hotels.models import HotelCandidate, Provider
from hotel_genie.hotels.normalizer import build_hotels_com_candidates

from .base import ProviderAdapter, ProviderQuery

logger = logging.getLogger(__name__)

REGIONS_PATH = "/v2/regions"
HOTELS_SEARCH_PATH = "/v2/hotels/search"

_PLACE_REGION_TYPES = ("CITY", "NEIGHBORHOOD", "MULTICITY", "AIRPORT")


def _pick_region(suggestions: List[Any], *, hotel_lookup: bool) -> Optional[dict]:
    regions = [item for item in suggestions if isinstance(item, dict) and item.get("gaiaId")]
    if not regions:
        return None
    preferred = ("HOTEL",) + _PLACE_REGION_TYPES if hotel_lookup else _PLACE_REGION_TYPES
    for region_type in preferred:
        for region in regions:
            if str(region.get("type", "")).upper() == region_type:
                return region
    return regions[0]


class HotelsComAdapter(ProviderAdapter):
    provider = Provider.HOTELS_COM

    async def _search(self, query: ProviderQuery) -> List[HotelCandidate]:
        regions = await self._get_json(
            REGIONS_PATH, {"query": query.name, "locale": "en_US", "domain": "US"}
        )
        suggestions = (regions or {}).get("data") or []
        region = _pick_region(suggestions, hotel_lookup=query.is_hotel_lookup)
        if region is None:
            logger.info("Hotels.com has no region matching '%s'", query.name)
            return []

        payload = await self._get_json(
            HOTELS_SEARCH_PATH,
            {
                "domain": "US",
                "locale": "en_US",
                "region_id": region["gaiaId"],
                "checkin_date": query.stay.check_in.isoformat(),
                "checkout_date": query.stay.check_out.isoformat(),
                "adults_number": query.adults,
                "children_number": 0,
                "rooms_number": query.rooms,
                "sort_order": "REVIEW",
                "currency": query.currency,
                "page_number": 1,
            },
        )
        return build_hotels_com_candidates(payload)
