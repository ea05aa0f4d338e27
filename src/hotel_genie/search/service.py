"""Search orchestration: cache, classification, aggregation, merge, rank."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import httpx

from hotel_genie.config.settings import Settings
from hotel_genie.core.errors import InvalidRequestError, NoCandidatesError
from hotel_genie.hotels.dedup import deduplicate, matches_hotel_name
from hotel_genie.hotels.models import HotelCandidate, MergedHotel, StayDates
from hotel_genie.hotels.ranking import rank_hotels
from hotel_genie.services.annotator import Annotator, GeminiAnnotator, RerankContext
from hotel_genie.services.geocoder import BookingGeocoder, Geocoder
from hotel_genie.services.providers import ProviderQuery, UsageLedger, build_adapters
from hotel_genie.storage.cache import CacheStore, MemoryCacheStore, ResultCache, cache_key

from .aggregator import Adapter, reserve_usage, run_reserved
from .classifier import QueryClassification, QueryType, classify_query
from .ranker import Ranker

logger = logging.getLogger(__name__)

SEARCH_NAMESPACE = "search"
HOTEL_NAMESPACE = "hotel"


@dataclass(frozen=True)
class SearchOutcome:
    hotels: List[MergedHotel]
    summary: Optional[str] = None
    cached: bool = False


def validate_stay(check_in: date, check_out: date) -> StayDates:
    if check_out <= check_in:
        raise InvalidRequestError("checkout must be after checkin")
    return StayDates(check_in=check_in, check_out=check_out)


class HotelSearchService:
    """Runs one search per call. The usage ledger is the only state carried between calls."""

    def __init__(
        self,
        settings: Settings,
        geocoder: Geocoder,
        adapters: Sequence[Adapter],
        *,
        cache: Optional[ResultCache] = None,
        ranker: Optional[Ranker] = None,
        usage: Optional[UsageLedger] = None,
    ) -> None:
        self.settings = settings
        self._geocoder = geocoder
        self._adapters = list(adapters)
        self._cache = cache
        self._ranker = ranker or Ranker(
            top_k=settings.rerank_top_k,
            top_n=settings.rerank_top_n,
            timeout_s=settings.annotation_timeout_s,
        )
        self.usage = usage if usage is not None else UsageLedger(limits=settings.usage_limits())

    async def search(self, query: str, check_in: date, check_out: date) -> SearchOutcome:
        query = query.strip()
        if not query:
            raise InvalidRequestError("query is required")
        stay = validate_stay(check_in, check_out)

        key = cache_key(SEARCH_NAMESPACE, query, check_in, check_out)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        classification = await classify_query(self._geocoder, query)
        candidates = await self._collect(classification, stay)
        if classification.type is QueryType.HOTEL:
            candidates = [c for c in candidates if matches_hotel_name(query, c.name)]
        merged = deduplicate(candidates)
        if not merged:
            raise NoCandidatesError(query)

        context = RerankContext(
            place=classification.name,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            top_n=self.settings.rerank_top_n,
        )
        ranked = await self._ranker.rank(merged, context)
        await self._cache_put(key, ranked.hotels, ranked.summary)
        return SearchOutcome(hotels=ranked.hotels, summary=ranked.summary)

    async def hotel_details(
        self,
        hotel_name: str,
        check_in: date,
        check_out: date,
        city: Optional[str] = None,
    ) -> SearchOutcome:
        """Look up one hotel by name; a miss is final and never widened to a city search.

        ``city`` only narrows the geocoder lookup. Candidates are still matched
        against ``hotel_name`` alone.
        """
        hotel_name = hotel_name.strip()
        if not hotel_name:
            raise InvalidRequestError("hotel_name is required")
        stay = validate_stay(check_in, check_out)
        lookup_text = f"{hotel_name}, {city.strip()}" if city and city.strip() else hotel_name

        key = cache_key(HOTEL_NAMESPACE, lookup_text, check_in, check_out)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        classification = await classify_query(self._geocoder, lookup_text)
        lookup = QueryClassification(
            type=QueryType.HOTEL,
            name=classification.name,
            coordinates=classification.coordinates,
        )
        candidates = await self._collect(lookup, stay)
        matching = [c for c in candidates if matches_hotel_name(hotel_name, c.name)]
        merged = deduplicate(matching)
        if not merged:
            raise NoCandidatesError(hotel_name)

        best = rank_hotels(merged)[0]
        summary = await self._ranker.summarize(best)
        await self._cache_put(key, [best], summary)
        return SearchOutcome(hotels=[best], summary=summary)

    async def _collect(self, classification: QueryClassification, stay: StayDates) -> List[HotelCandidate]:
        provider_query = ProviderQuery(
            name=classification.name,
            stay=stay,
            coordinates=classification.coordinates,
            place_type=classification.type.value,
            adults=self.settings.adults,
            rooms=self.settings.rooms,
            currency=self.settings.currency,
            locale=self.settings.locale,
        )
        # recorded before the fan-out so concurrent searches see each other's calls
        reservation = reserve_usage(self._adapters, self.usage)
        self.usage = reservation.usage
        result = await run_reserved(reservation, provider_query, timeout_s=self.settings.provider_timeout_s)
        return result.candidates

    async def _cache_get(self, key: str) -> Optional[SearchOutcome]:
        if self._cache is None:
            return None
        hit = await self._cache.get(key)
        if hit is None:
            return None
        return SearchOutcome(hotels=hit.hotels, summary=hit.summary, cached=True)

    async def _cache_put(self, key: str, hotels: Sequence[MergedHotel], summary: Optional[str]) -> None:
        if self._cache is None or not hotels:
            return
        await self._cache.put(key, hotels, summary)


def build_cache(settings: Settings, stores: Sequence[CacheStore] = ()) -> Optional[ResultCache]:
    tiers: List[CacheStore] = []
    if settings.cache_memory_enabled:
        tiers.append(MemoryCacheStore(max_entries=settings.cache_memory_max_entries, ttl_s=settings.cache_ttl_s))
    tiers.extend(stores)
    if not tiers:
        logger.info("Result cache disabled")
        return None
    return ResultCache(stores=tiers, ttl_s=settings.cache_ttl_s)


def build_service(
    settings: Settings,
    client: httpx.AsyncClient,
    *,
    stores: Sequence[CacheStore] = (),
) -> HotelSearchService:
    """Wire the production collaborators around a shared HTTP client.

    ``stores`` are durable tiers opened by the caller; they sit behind the
    in-process tier.
    """
    geocoder = BookingGeocoder(
        client,
        host=settings.booking_host,
        api_key=settings.rapidapi_key,
        locale=settings.locale,
        timeout=settings.geocoder_timeout_s,
    )
    annotator: Optional[Annotator] = None
    if settings.annotation_enabled:
        annotator = GeminiAnnotator(
            client,
            api_key=settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.annotation_timeout_s,
        )
    else:
        logger.info("Gemini API key not set; AI reranking and summaries disabled")
    ranker = Ranker(
        annotator,
        top_k=settings.rerank_top_k,
        top_n=settings.rerank_top_n,
        timeout_s=settings.annotation_timeout_s,
    )
    adapters = build_adapters(settings, client)
    logger.info("Search service using providers: %s", ", ".join(a.provider.value for a in adapters) or "none")
    return HotelSearchService(
        settings,
        geocoder,
        adapters,
        cache=build_cache(settings, stores),
        ranker=ranker,
    )
