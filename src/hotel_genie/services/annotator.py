"""Gemini client used as the optional reranking and summary service."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from hotel_genie.core.errors import AnnotationServiceFailure
from hotel_genie.hotels.models import MergedHotel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerankContext:
    place: str
    check_in: str
    check_out: str
    top_n: int = 10


class Annotator(Protocol):
    async def rerank(self, hotels: Sequence[MergedHotel], context: RerankContext) -> str:
        """Return the raw model reply for a rerank request."""

    async def summarize_hotel(self, hotel: MergedHotel) -> str:
        """Return a one-paragraph summary of ``hotel``."""


def _hotel_brief(hotel: MergedHotel) -> Dict[str, Any]:
    return {
        "identity_key": hotel.identity_key,
        "name": hotel.name,
        "address": hotel.address,
        "review_score": round(hotel.review_score, 2),
        "review_count": hotel.review_count,
        "review_text": hotel.review_text,
        "best_price": hotel.best_price,
        "agent_score": hotel.agent_score,
    }


def build_rerank_prompt(hotels: Sequence[MergedHotel], context: RerankContext) -> str:
    listing = json.dumps([_hotel_brief(hotel) for hotel in hotels], ensure_ascii=False)
    return (
        f'You are a travel assistant. Here are hotels in "{context.place}" for a stay from '
        f"{context.check_in} to {context.check_out}, with review score (0-10), review count and review text.\n"
        f"Return ONLY the top {context.top_n}, ranked by review score (higher is better), review count "
        '(more is better) and how positive the review text is ("Excellent" > "Good").\n'
        "Also write a short Markdown summary: an intro sentence, the top 3-5 hotels as bullets with a "
        "key highlight each, and a one-line closing remark.\n"
        "Reply strictly as JSON in this shape, using identity_key values copied from the input:\n"
        '{"hotels": ["<identity_key>", ...], "summary": "<markdown>"}\n\n'
        f"Hotels: {listing}"
    )


def build_summary_prompt(hotel: MergedHotel) -> str:
    amenities = ", ".join(hotel.amenities) or "not listed"
    return (
        "You are a hotel review assistant. Based on the following hotel details, write a concise and "
        "engaging summary for a traveler. Highlight key features, amenities and overall vibe.\n\n"
        f"- Name: {hotel.name}\n"
        f"- Address: {hotel.address or 'unknown'}\n"
        f"- Review Score: {hotel.review_score:.1f}/10 ({hotel.review_count} reviews)\n"
        f"- Description: {hotel.description or 'n/a'}\n"
        f"- Amenities: {amenities}\n\n"
        "Return the summary as a single paragraph. Do not use a header or title."
    )


class GeminiAnnotator:
    """Calls the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._timeout = timeout

    async def rerank(self, hotels: Sequence[MergedHotel], context: RerankContext) -> str:
        return await self._generate(build_rerank_prompt(hotels, context), json_reply=True)

    async def summarize_hotel(self, hotel: MergedHotel) -> str:
        return await self._generate(build_summary_prompt(hotel))

    async def _generate(self, prompt: str, *, json_reply: bool = False) -> str:
        body: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if json_reply:
            body["generationConfig"] = {"responseMimeType": "application/json"}
        try:
            response = await self._client.post(
                self._url,
                json=body,
                headers={"x-goog-api-key": self._api_key},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise AnnotationServiceFailure(f"Gemini request failed: {exc.__class__.__name__}") from exc
        if response.is_error:
            raise AnnotationServiceFailure(f"Gemini returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise AnnotationServiceFailure("Gemini returned a non-JSON body") from exc
        text = _extract_text(payload)
        if not text:
            raise AnnotationServiceFailure("Gemini reply contained no text")
        return text


def _extract_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list):
        return None
    parts: List[str] = []
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        if not isinstance(content, dict):
            continue
        content_parts = content.get("parts")
        if not isinstance(content_parts, list):
            continue
        for part in content_parts:
            if isinstance(part, dict) and part.get("text"):
                parts.append(str(part["text"]))
        if parts:
            break
    return "".join(parts).strip() or None
