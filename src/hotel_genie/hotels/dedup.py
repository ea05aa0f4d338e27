"""Identity keys and merging of candidates that describe the same physical hotel.

Normalisation rules:

* names are case-folded and reduced to their alphanumeric characters;
* coordinates are rounded to ``COORDINATE_PRECISION`` decimal degrees
  (3 places, roughly 110 m);
* without coordinates the key falls back to the normalised name plus the
  normalised address.

Records sharing a key are always merged and records with different keys are
never merged. A merged hotel keeps the name, address and coordinates of its
first-seen record, so its key is a fixed point: deduplicating the output
again changes nothing.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from .models import Coordinates, HotelCandidate, MergedHotel, PriceQuote

logger = logging.getLogger(__name__)

COORDINATE_PRECISION = 3


def normalize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return "".join(char for char in value.casefold() if char.isalnum())


def _format_coordinate(value: float) -> str:
    rounded = round(value, COORDINATE_PRECISION) + 0.0  # folds -0.0 into 0.0
    return f"{rounded:.{COORDINATE_PRECISION}f}"


def identity_key(name: str, coordinates: Optional[Coordinates], address: Optional[str] = None) -> str:
    normalized_name = normalize_text(name)
    if coordinates is not None:
        return (
            f"{normalized_name}@{_format_coordinate(coordinates.latitude)},"
            f"{_format_coordinate(coordinates.longitude)}"
        )
    return f"{normalized_name}|{normalize_text(address)}"


def candidate_identity(candidate: HotelCandidate) -> str:
    return identity_key(candidate.name, candidate.coordinates, candidate.address)


def matches_hotel_name(requested: str, name: str) -> bool:
    """Loose match used by single-hotel lookups."""
    wanted = normalize_text(requested)
    found = normalize_text(name)
    if not wanted or not found:
        return False
    return wanted in found or found in wanted


def _coerce_review(candidate: HotelCandidate) -> tuple[float, int]:
    try:
        score = float(candidate.review_score)
        count = int(candidate.review_count or 0)
    except (TypeError, ValueError):
        return 0.0, 0
    if score != score or score < 0 or count < 0:  # NaN or nonsense
        return 0.0, 0
    return score, count


def seed_from_candidate(candidate: HotelCandidate) -> MergedHotel:
    score, count = _coerce_review(candidate)
    prices: Dict = {}
    if candidate.price is not None:
        prices[candidate.provider] = candidate.price
    return MergedHotel(
        identity_key=candidate_identity(candidate),
        name=candidate.name.strip(),
        address=candidate.address,
        coordinates=candidate.coordinates,
        sources=[candidate.source_ref()],
        prices=prices,
        review_score=score,
        review_count=count,
        review_text=candidate.review_text,
        image_url=candidate.image_url,
        description=candidate.description,
        amenities=list(candidate.amenities),
    )


def combine_reviews(
    old_score: float, old_count: int, new_score: float, new_count: int
) -> tuple[float, int]:
    """Weighted running average of two (score, count) pairs.

    When neither side carries any weight the prior score is kept.
    """
    total = old_count + new_count
    if total <= 0:
        return old_score, 0
    return (old_score * old_count + new_score * new_count) / total, total


def _merge_price(existing: Optional[PriceQuote], incoming: PriceQuote) -> PriceQuote:
    if existing is None or existing.amount is None:
        return incoming
    if incoming.amount is not None and incoming.amount < existing.amount:
        return incoming
    return existing


def absorb(target: MergedHotel, other: MergedHotel) -> MergedHotel:
    """Fold ``other`` into ``target`` in place and return ``target``."""
    for source in other.sources:
        if source not in target.sources:
            target.sources.append(source)
    for provider, quote in other.prices.items():
        target.prices[provider] = _merge_price(target.prices.get(provider), quote)
    target.review_score, target.review_count = combine_reviews(
        target.review_score, target.review_count, other.review_score, other.review_count
    )
    target.review_text = target.review_text or other.review_text
    target.image_url = target.image_url or other.image_url
    target.description = target.description or other.description
    for amenity in other.amenities:
        if amenity not in target.amenities:
            target.amenities.append(amenity)
    return target


def _as_merged(record: Union[HotelCandidate, MergedHotel]) -> Optional[MergedHotel]:
    if isinstance(record, MergedHotel):
        if not record.name or not record.name.strip():
            return None
        return MergedHotel.from_dict(record.to_dict())
    if not record.name or not str(record.name).strip():
        return None
    return seed_from_candidate(record)


def deduplicate(records: Iterable[Union[HotelCandidate, MergedHotel]]) -> List[MergedHotel]:
    """Group records by identity key and merge each group in encounter order."""
    groups: Dict[str, MergedHotel] = {}
    dropped = 0
    for record in records:
        merged = _as_merged(record)
        if merged is None:
            dropped += 1
            continue
        existing = groups.get(merged.identity_key)
        if existing is None:
            groups[merged.identity_key] = merged
        else:
            absorb(existing, merged)
    if dropped:
        logger.debug("Excluded %s nameless records before grouping", dropped)
    return list(groups.values())
