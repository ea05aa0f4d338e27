"""Decides whether a free-text query names a place or a single hotel."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from hotel_genie.core.errors import GeocodeFailure
from hotel_genie.hotels.models import Coordinates
from hotel_genie.services.geocoder import Geocoder

logger = logging.getLogger(__name__)


class QueryType(str, Enum):
    CITY = "city"
    REGION = "region"
    DISTRICT = "district"
    LOCALITY = "locality"
    HOTEL = "hotel"
    UNKNOWN = "unknown"

    @property
    def is_place(self) -> bool:
        return self in (QueryType.CITY, QueryType.REGION, QueryType.DISTRICT, QueryType.LOCALITY)


_DEST_TYPE_MAP = {
    "city": QueryType.CITY,
    "region": QueryType.REGION,
    "country": QueryType.REGION,
    "district": QueryType.DISTRICT,
    "landmark": QueryType.LOCALITY,
    "airport": QueryType.LOCALITY,
    "locality": QueryType.LOCALITY,
    "hotel": QueryType.HOTEL,
}


def map_destination_type(dest_type: Optional[str]) -> QueryType:
    return _DEST_TYPE_MAP.get((dest_type or "").strip().lower(), QueryType.UNKNOWN)


@dataclass(frozen=True)
class QueryClassification:
    type: QueryType
    name: str
    coordinates: Optional[Coordinates] = None


async def classify_query(geocoder: Geocoder, query: str) -> QueryClassification:
    """Resolve ``query`` through the geocoder.

    Raises ``GeocodeFailure`` when the geocoder fails, finds nothing, or
    returns a destination type we cannot use. The query is never retried
    under another interpretation.
    """
    try:
        result = await geocoder.geocode(query)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Geocoder failed for '%s': %s", query, exc)
        raise GeocodeFailure(query, "geocoder unavailable") from exc
    if result is None:
        raise GeocodeFailure(query)

    query_type = map_destination_type(result.type)
    if query_type is QueryType.UNKNOWN:
        logger.info("Unsupported destination type '%s' for '%s'", result.type, query)
        raise GeocodeFailure(query, f"unsupported destination type '{result.type}'")

    classification = QueryClassification(
        type=query_type,
        name=result.name or query,
        coordinates=result.coordinates,
    )
    logger.info("Classified '%s' as %s (%s)", query, classification.type.value, classification.name)
    return classification
