"""Deterministic hotel scoring, ordering and result filtering."""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from .models import MergedHotel
from .normalizer import normalize_review_score

QUALITY_POINTS = 70.0
VOLUME_POINTS = 30.0
# log10 of the review count that earns the full volume allowance (1000 reviews).
VOLUME_SATURATION = 3.0

SORT_OPTIONS = ("price", "rating", "reviews", "name")


def agent_score(review_score: float, review_count: int) -> float:
    """Return the 0-100 heuristic score for a review score/count pair."""
    score = normalize_review_score(review_score)
    base = min(score, 10.0) / 10.0 * QUALITY_POINTS
    volume = min(math.log10(max(review_count, 0) + 1) / VOLUME_SATURATION * VOLUME_POINTS, VOLUME_POINTS)
    value = round((base + volume) * 10) / 10
    return max(0.0, min(value, 100.0))


def _order_key(hotel: MergedHotel) -> tuple[float, float, int]:
    return (-(hotel.agent_score or 0.0), -hotel.review_score, -hotel.review_count)


def score_hotels(hotels: Iterable[MergedHotel]) -> List[MergedHotel]:
    scored = list(hotels)
    for hotel in scored:
        hotel.agent_score = agent_score(hotel.review_score, hotel.review_count)
    return scored


def rank_hotels(hotels: Iterable[MergedHotel]) -> List[MergedHotel]:
    """Score every hotel and order by agent score, review score, then review count."""
    return sorted(score_hotels(hotels), key=_order_key)


def apply_rerank(ranked: Sequence[MergedHotel], ordered_keys: Sequence[str]) -> List[MergedHotel]:
    """Put ``ordered_keys`` first, followed by the rest in their existing order."""
    by_key = {hotel.identity_key: hotel for hotel in ranked}
    head = [by_key[key] for key in ordered_keys]
    chosen = set(ordered_keys)
    tail = [hotel for hotel in ranked if hotel.identity_key not in chosen]
    return head + tail


def filter_hotels(
    hotels: Iterable[MergedHotel],
    *,
    min_rating: Optional[float] = None,
    max_price: Optional[float] = None,
    amenities: Optional[Sequence[str]] = None,
    sort_by: Optional[str] = None,
) -> List[MergedHotel]:
    """Narrow and optionally re-sort a ranked list; ``sort_by=None`` keeps rank order."""
    filtered = list(hotels)
    if min_rating is not None:
        filtered = [hotel for hotel in filtered if hotel.review_score >= min_rating]
    if max_price is not None:
        filtered = [
            hotel for hotel in filtered if hotel.best_price is not None and hotel.best_price <= max_price
        ]
    if amenities:
        wanted = [amenity.lower() for amenity in amenities if amenity]
        filtered = [
            hotel
            for hotel in filtered
            if any(term in have.lower() for term in wanted for have in hotel.amenities)
        ]

    if sort_by is None:
        return filtered
    if sort_by == "price":
        filtered.sort(key=lambda hotel: (hotel.best_price is None, hotel.best_price or 0.0))
    elif sort_by == "rating":
        filtered.sort(key=lambda hotel: hotel.review_score, reverse=True)
    elif sort_by == "reviews":
        filtered.sort(key=lambda hotel: hotel.review_count, reverse=True)
    elif sort_by == "name":
        filtered.sort(key=lambda hotel: hotel.name.casefold())
    else:
        raise ValueError(f"Unsupported sort option '{sort_by}'. Expected one of: {', '.join(SORT_OPTIONS)}")
    return filtered
