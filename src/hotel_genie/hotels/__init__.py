"""Hotel domain models, normalisation, deduplication and ranking helpers."""

from .dedup import (
    combine_reviews,
    deduplicate,
    identity_key,
    matches_hotel_name,
    normalize_text,
)
from .models import (
    Coordinates,
    HotelCandidate,
    MergedHotel,
    PriceQuote,
    Provider,
    SourceRef,
    StayDates,
)
from .normalizer import normalize_review_score, top_by_review_count
from .ranking import agent_score, apply_rerank, filter_hotels, rank_hotels

__all__ = [
    "Coordinates",
    "HotelCandidate",
    "MergedHotel",
    "PriceQuote",
    "Provider",
    "SourceRef",
    "StayDates",
    "agent_score",
    "apply_rerank",
    "combine_reviews",
    "deduplicate",
    "filter_hotels",
    "identity_key",
    "matches_hotel_name",
    "normalize_review_score",
    "normalize_text",
    "rank_hotels",
    "top_by_review_count",
]
