"""Shared plumbing for RapidAPI-backed hotel provider adapters."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

import httpx

from hotel_genie.core.errors import UpstreamProviderError
from hotel_genie.hotels.models import Coordinates, HotelCandidate, Provider, StayDates
from hotel_genie.hotels.normalizer import top_by_review_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderQuery:
    """What every adapter receives: a resolved place or hotel plus stay details."""

    name: str
    stay: StayDates
    coordinates: Optional[Coordinates] = None
    place_type: str = "city"
    adults: int = 2
    rooms: int = 1
    currency: str = "USD"
    locale: str = "en-gb"

    @property
    def is_hotel_lookup(self) -> bool:
        return self.place_type == "hotel"


@dataclass(frozen=True)
class ProviderConfig:
    """Explicit per-provider configuration; adapters hold no other state."""

    api_key: Optional[str]
    host: str
    max_retries: int = 3
    retry_backoff_s: float = 1.0
    result_limit: Optional[int] = 20

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    def headers(self) -> Dict[str, str]:
        headers = {"X-RapidAPI-Host": self.host, "Accept": "application/json"}
        if self.api_key:
            headers["X-RapidAPI-Key"] = self.api_key
        return headers


@dataclass(frozen=True)
class ProviderResult:
    provider: Provider
    candidates: List[HotelCandidate] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class UsageLedger:
    """Per-provider call budget, passed in and returned explicitly."""

    limits: Mapping[Provider, int] = field(default_factory=dict)
    counts: Mapping[Provider, int] = field(default_factory=dict)

    def used(self, provider: Provider) -> int:
        return self.counts.get(provider, 0)

    def allows(self, provider: Provider) -> bool:
        limit = self.limits.get(provider)
        return limit is None or self.used(provider) < limit

    def record(self, provider: Provider) -> "UsageLedger":
        counts = dict(self.counts)
        counts[provider] = counts.get(provider, 0) + 1
        return replace(self, counts=counts)


class ProviderAdapter:
    """Base adapter: subclasses implement ``_search`` and raise on upstream trouble.

    ``fetch`` is the boundary. It turns every upstream problem into an empty
    ``ProviderResult`` carrying the failure reason. Only cancellation
    propagates.
    """

    provider: Provider

    def __init__(self, client: httpx.AsyncClient, config: ProviderConfig) -> None:
        self._client = client
        self.config = config

    async def fetch(self, query: ProviderQuery) -> ProviderResult:
        try:
            candidates = await self._search(query)
        except UpstreamProviderError as exc:
            logger.warning("%s search failed for '%s': %s", self.provider.value, query.name, exc)
            return ProviderResult(self.provider, error=str(exc))
        except httpx.HTTPError as exc:
            logger.warning(
                "%s request error for '%s': %s", self.provider.value, query.name, exc.__class__.__name__
            )
            return ProviderResult(self.provider, error=f"{exc.__class__.__name__}: {exc}")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("%s returned a malformed payload for '%s': %s", self.provider.value, query.name, exc)
            return ProviderResult(self.provider, error=f"malformed payload: {exc}")
        limited = top_by_review_count(candidates, self.config.result_limit)
        logger.info(
            "%s returned %s listings for '%s' (kept %s)",
            self.provider.value,
            len(candidates),
            query.name,
            len(limited),
        )
        return ProviderResult(self.provider, candidates=limited)

    async def _search(self, query: ProviderQuery) -> List[HotelCandidate]:
        raise NotImplementedError

    async def _get_json(self, path: str, params: Mapping[str, Any]) -> Any:
        """GET ``path`` with retry on HTTP 429 and return the decoded JSON body."""
        url = f"{self.config.base_url}{path}"
        query = {key: str(value) for key, value in params.items() if value is not None}
        delay = self.config.retry_backoff_s
        for attempt in range(1, self.config.max_retries + 1):
            response = await self._client.get(url, params=query, headers=self.config.headers())
            if response.status_code == 429 and attempt < self.config.max_retries:
                logger.warning(
                    "%s rate limited on %s (attempt %s); retrying in %.1fs",
                    self.provider.value,
                    path,
                    attempt,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
                continue
            if response.is_error:
                raise UpstreamProviderError(
                    self.provider.value,
                    f"HTTP {response.status_code} from {path}: {response.text[:256]}",
                    status=response.status_code,
                )
            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamProviderError(self.provider.value, f"non-JSON body from {path}") from exc
        raise UpstreamProviderError(self.provider.value, f"rate limited on {path}", status=429)
