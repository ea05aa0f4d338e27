"""Search pipeline: classify, aggregate, merge, rank, cache."""

from .aggregator import AggregationResult, UsageReservation, aggregate, reserve_usage, run_reserved
from .classifier import QueryClassification, QueryType, classify_query, map_destination_type
from .ranker import ParsedRerank, RankedHotels, Ranker, RerankParseError, parse_rerank_response
from .service import HotelSearchService, SearchOutcome, build_cache, build_service

__all__ = [
    "AggregationResult",
    "HotelSearchService",
    "ParsedRerank",
    "QueryClassification",
    "QueryType",
    "RankedHotels",
    "Ranker",
    "RerankParseError",
    "SearchOutcome",
    "UsageReservation",
    "aggregate",
    "build_cache",
    "build_service",
    "classify_query",
    "map_destination_type",
    "parse_rerank_response",
    "reserve_usage",
    "run_reserved",
]
