"""Utilities to transform raw provider payloads into ``HotelCandidate`` records."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .models import Coordinates, HotelCandidate, PriceQuote, Provider

logger = logging.getLogger(__name__)

CANONICAL_RATING_SCALE = 10.0

_NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if not match:
            return None
        value = match.group(0).replace(",", "")
    try:
        converted = float(value)
    except (TypeError, ValueError):
        return None
    if converted != converted:  # NaN
        return None
    return converted


def _to_int(value: Any) -> int:
    converted = _to_float(value)
    if converted is None or converted < 0:
        return 0
    return int(converted)


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _join_parts(*parts: Any) -> Optional[str]:
    cleaned = [part for part in (_clean_str(item) for item in parts) if part]
    return ", ".join(cleaned) or None


def _dig(payload: Any, *keys: str) -> Any:
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _string_list(values: Any, *, key: Optional[str] = None) -> List[str]:
    if not isinstance(values, list):
        return []
    items: List[str] = []
    for value in values:
        if key and isinstance(value, dict):
            value = value.get(key)
        text = _clean_str(value)
        if text:
            items.append(text)
    return items


def normalize_review_score(value: Any, scale: Optional[float] = None) -> float:
    """Rescale a provider rating onto the canonical 0-10 scale.

    A known provider ``scale`` is applied first. Anything still above 10 is
    treated as a mis-tagged value and halved against the 10 point scale
    (``score / 10 * 5``). Missing or malformed values become ``0.0``.
    """
    score = _to_float(value)
    if score is None or score < 0:
        return 0.0
    if scale:
        score = score * CANONICAL_RATING_SCALE / scale
    if score > CANONICAL_RATING_SCALE:
        score = score / 10 * 5
    return min(score, CANONICAL_RATING_SCALE)


def _records(payload: Any, *keys: str) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def build_booking_candidate(hotel: dict[str, Any]) -> Optional[HotelCandidate]:
    name = _clean_str(hotel.get("hotel_name") or hotel.get("name"))
    if not name:
        return None
    breakdown: Dict[str, Any] = hotel.get("price_breakdown") or {}
    amount = _to_float(hotel.get("min_total_price"))
    if amount is None:
        amount = _to_float(breakdown.get("gross_price"))
    currency = _clean_str(hotel.get("currency_code") or breakdown.get("currency"))
    url = _clean_str(hotel.get("url"))
    return HotelCandidate(
        provider=Provider.BOOKING,
        name=name,
        source_id=_clean_str(hotel.get("hotel_id")),
        address=_join_parts(hotel.get("address") or hotel.get("address_trans"), hotel.get("city")),
        coordinates=Coordinates.from_values(hotel.get("latitude"), hotel.get("longitude")),
        price=PriceQuote(amount=amount, currency=currency, url=url) if amount is not None else None,
        review_score=normalize_review_score(hotel.get("review_score"), scale=10),
        review_count=_to_int(hotel.get("review_nr") or hotel.get("review_count")),
        review_text=_clean_str(hotel.get("review_score_word")),
        image_url=_clean_str(hotel.get("max_1440_photo_url") or hotel.get("max_photo_url") or hotel.get("main_photo_url")),
        url=url,
        description=_clean_str(hotel.get("hotel_name_trans")),
        amenities=_string_list(hotel.get("hotel_facilities")),
    )


def build_travel_advisor_candidate(
    hotel: dict[str, Any], *, currency: Optional[str] = None
) -> Optional[HotelCandidate]:
    name = _clean_str(hotel.get("name"))
    if not name:
        return None
    url = _clean_str(hotel.get("web_url"))
    amount = _to_float(hotel.get("price"))
    return HotelCandidate(
        provider=Provider.TRAVEL_ADVISOR,
        name=name,
        source_id=_clean_str(hotel.get("location_id")),
        address=_clean_str(_dig(hotel, "address_obj", "address_string") or hotel.get("address"))
        or _clean_str(hotel.get("location_string")),
        coordinates=Coordinates.from_values(hotel.get("latitude"), hotel.get("longitude")),
        price=PriceQuote(amount=amount, currency=currency, url=url) if amount is not None else None,
        review_score=normalize_review_score(hotel.get("rating"), scale=5),
        review_count=_to_int(hotel.get("num_reviews")),
        review_text=_clean_str(hotel.get("ranking")),
        image_url=_clean_str(_dig(hotel, "photo", "images", "large", "url")),
        url=url,
        description=_clean_str(hotel.get("description")),
        amenities=_string_list(hotel.get("amenities"), key="name"),
    )


def build_hotels_com_candidate(hotel: dict[str, Any]) -> Optional[HotelCandidate]:
    name = _clean_str(hotel.get("name"))
    if not name:
        return None
    source_id = _clean_str(hotel.get("id"))
    url = f"https://hotels.com/ho{source_id}" if source_id else None
    amount = _to_float(_dig(hotel, "price", "lead", "amount"))
    lat_long = _dig(hotel, "mapMarker", "latLong") or {}
    return HotelCandidate(
        provider=Provider.HOTELS_COM,
        name=name,
        source_id=source_id,
        address=_join_parts(_dig(hotel, "address", "line1"), _dig(hotel, "address", "city"))
        or _clean_str(_dig(hotel, "neighborhood", "name")),
        coordinates=Coordinates.from_values(lat_long.get("latitude"), lat_long.get("longitude")),
        price=PriceQuote(
            amount=amount,
            currency=_clean_str(_dig(hotel, "price", "lead", "currencyInfo", "code")),
            url=url,
        )
        if amount is not None
        else None,
        review_score=normalize_review_score(_dig(hotel, "reviews", "score"), scale=10),
        review_count=_to_int(_dig(hotel, "reviews", "total")),
        review_text=_clean_str(_dig(hotel, "reviews", "label")),
        image_url=_clean_str(_dig(hotel, "propertyImage", "image", "url")),
        url=url,
        description=_clean_str(_dig(hotel, "neighborhood", "name")),
        amenities=_string_list(_dig(hotel, "amenities", "amenities"), key="name"),
    )


def build_priceline_candidate(hotel: dict[str, Any]) -> Optional[HotelCandidate]:
    name = _clean_str(hotel.get("name"))
    if not name:
        return None
    location: Dict[str, Any] = hotel.get("location") or {}
    address = location.get("address")
    if isinstance(address, dict):
        address_text = _join_parts(address.get("addressLine1"), address.get("cityName"))
    else:
        address_text = _clean_str(address or hotel.get("address"))
    url = _clean_str(hotel.get("deeplink"))
    amount = _to_float(_dig(hotel, "ratesSummary", "minPrice"))
    return HotelCandidate(
        provider=Provider.PRICELINE,
        name=name,
        source_id=_clean_str(hotel.get("hotelId")),
        address=address_text,
        coordinates=Coordinates.from_values(location.get("latitude"), location.get("longitude")),
        price=PriceQuote(
            amount=amount,
            currency=_clean_str(_dig(hotel, "ratesSummary", "minCurrencyCode")),
            url=url,
        )
        if amount is not None
        else None,
        review_score=normalize_review_score(hotel.get("overallGuestRating"), scale=10),
        review_count=_to_int(hotel.get("totalReviewCount")),
        image_url=_clean_str(hotel.get("thumbnailUrl")),
        url=url,
        description=_clean_str(hotel.get("shortDescription")),
        amenities=_string_list(hotel.get("hotelFeatures") or hotel.get("amenities"), key="name"),
    )


def _build_all(builder, records: Iterable[Dict[str, Any]], provider: Provider) -> List[HotelCandidate]:
    candidates: List[HotelCandidate] = []
    skipped = 0
    for record in records:
        candidate = builder(record)
        if candidate is None:
            skipped += 1
            continue
        candidates.append(candidate)
    if skipped:
        logger.debug("Dropped %s %s listings without a name", skipped, provider.value)
    return candidates


def build_booking_candidates(payload: Any) -> List[HotelCandidate]:
    return _build_all(build_booking_candidate, _records(payload, "result", "results"), Provider.BOOKING)


def build_travel_advisor_candidates(payload: Any, *, currency: Optional[str] = None) -> List[HotelCandidate]:
    return _build_all(
        lambda record: build_travel_advisor_candidate(record, currency=currency),
        _records(payload, "data"),
        Provider.TRAVEL_ADVISOR,
    )


def build_hotels_com_candidates(payload: Any) -> List[HotelCandidate]:
    return _build_all(build_hotels_com_candidate, _records(payload, "properties"), Provider.HOTELS_COM)


def build_priceline_candidates(payload: Any) -> List[HotelCandidate]:
    return _build_all(build_priceline_candidate, _records(payload, "hotels"), Provider.PRICELINE)


def top_by_review_count(candidates: Iterable[HotelCandidate], limit: Optional[int]) -> List[HotelCandidate]:
    """Keep the ``limit`` most reviewed candidates, preserving provider order on ties."""
    ordered = sorted(candidates, key=lambda candidate: candidate.review_count, reverse=True)
    if limit is None or limit <= 0:
        return ordered
    return ordered[:limit]
