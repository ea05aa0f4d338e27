"""Heuristic ranking with optional, validated reranking by the AI annotator."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from hotel_genie.core.errors import AnnotationServiceFailure
from hotel_genie.hotels.models import MergedHotel
from hotel_genie.hotels.ranking import apply_rerank, rank_hotels
from hotel_genie.services.annotator import Annotator, RerankContext

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ParsedRerank:
    identity_keys: List[str]
    summary: Optional[str] = None


@dataclass(frozen=True)
class RerankParseError:
    reason: str


RerankParse = Union[ParsedRerank, RerankParseError]


@dataclass(frozen=True)
class RankedHotels:
    hotels: List[MergedHotel]
    summary: Optional[str] = None
    reranked: bool = False


def _entry_key(entry: Any) -> Optional[str]:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("identity_key")
        return value if isinstance(value, str) else None
    return None


def parse_rerank_response(text: str, submitted_keys: Sequence[str]) -> RerankParse:
    """Validate an annotator reply against the hotels that were submitted.

    The reply is accepted only when it names at least one hotel, every named
    hotel was submitted, and none is repeated.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        return RerankParseError("no JSON object in reply")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        return RerankParseError(f"invalid JSON: {exc.msg}")
    if not isinstance(payload, dict) or not isinstance(payload.get("hotels"), list):
        return RerankParseError("reply has no 'hotels' list")

    keys: List[str] = []
    for entry in payload["hotels"]:
        key = _entry_key(entry)
        if key is None:
            return RerankParseError("hotel entry without identity_key")
        keys.append(key)
    if not keys:
        return RerankParseError("empty hotel list")

    known = set(submitted_keys)
    unknown = [key for key in keys if key not in known]
    if unknown:
        return RerankParseError(f"unknown hotels: {', '.join(unknown[:3])}")
    if len(set(keys)) != len(keys):
        return RerankParseError("duplicate hotels")

    summary = payload.get("summary")
    return ParsedRerank(identity_keys=keys, summary=summary.strip() if isinstance(summary, str) and summary.strip() else None)


class Ranker:
    """Always computes the deterministic order; the annotator may only reorder it."""

    def __init__(
        self,
        annotator: Optional[Annotator] = None,
        *,
        top_k: int = 25,
        top_n: int = 10,
        timeout_s: float = 10.0,
    ) -> None:
        self._annotator = annotator
        self._top_k = top_k
        self._top_n = top_n
        self._timeout_s = timeout_s

    async def rank(self, hotels: Sequence[MergedHotel], context: RerankContext) -> RankedHotels:
        ranked = rank_hotels(hotels)
        if self._annotator is None or not ranked:
            return RankedHotels(hotels=ranked)

        submitted = ranked[: self._top_k]
        try:
            reply = await asyncio.wait_for(
                self._annotator.rerank(submitted, context),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("AI rerank timed out after %.1fs; using heuristic order", self._timeout_s)
            return RankedHotels(hotels=ranked)
        except AnnotationServiceFailure as exc:
            logger.warning("AI rerank unavailable (%s); using heuristic order", exc.message)
            return RankedHotels(hotels=ranked)

        parsed = parse_rerank_response(reply, [hotel.identity_key for hotel in submitted])
        if isinstance(parsed, RerankParseError):
            logger.warning("Discarding AI rerank reply: %s", parsed.reason)
            return RankedHotels(hotels=ranked)

        keys = parsed.identity_keys[: self._top_n]
        logger.info("Applied AI rerank to %s of %s hotels", len(keys), len(ranked))
        return RankedHotels(hotels=apply_rerank(ranked, keys), summary=parsed.summary, reranked=True)

    async def summarize(self, hotel: MergedHotel) -> Optional[str]:
        if self._annotator is None:
            return None
        try:
            summary = await asyncio.wait_for(self._annotator.summarize_hotel(hotel), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            logger.warning("AI summary timed out for '%s'", hotel.name)
            return None
        except AnnotationServiceFailure as exc:
            logger.warning("AI summary unavailable for '%s': %s", hotel.name, exc.message)
            return None
        hotel.ai_summary = summary.strip() or None
        return hotel.ai_summary
