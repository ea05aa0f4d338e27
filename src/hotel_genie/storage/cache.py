"""TTL result cache over one or more pluggable key-value tiers."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from cachetools import TTLCache

from hotel_genie.core.errors import CacheUnavailable
from hotel_genie.hotels.models import MergedHotel

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_MEMORY_MAX_ENTRIES = 512
DEFAULT_MEMORY_TTL_S = 30 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def cache_key(namespace: str, query: str, check_in: date, check_out: date) -> str:
    """Whitespace- and case-insensitive key for a query and stay."""
    normalized = " ".join(query.split()).casefold()
    return f"{namespace}:{normalized}:{check_in.isoformat()}:{check_out.isoformat()}"


@dataclass
class CacheEntry:
    cache_key: str
    payload: List[MergedHotel]
    created_at: datetime
    summary: Optional[str] = None

    def age_seconds(self, now: datetime) -> float:
        return (_as_utc(now) - _as_utc(self.created_at)).total_seconds()

    def to_dict(self) -> dict[str, object]:
        return {
            "cache_key": self.cache_key,
            "payload": MergedHotel.from_iterable(self.payload),
            "created_at": self.created_at.isoformat(),
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            cache_key=data["cache_key"],
            payload=[MergedHotel.from_dict(item) for item in data.get("payload", [])],
            created_at=datetime.fromisoformat(data["created_at"]),
            summary=data.get("summary"),
        )


@dataclass(frozen=True)
class CachedResult:
    hotels: List[MergedHotel]
    summary: Optional[str]
    age_seconds: float


class CacheStore(Protocol):
    """Key-value tier. Implementations may raise on I/O trouble; ``ResultCache`` contains it."""

    name: str

    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    async def put(self, entry: CacheEntry) -> None:
        ...


class MemoryCacheStore:
    """In-process tier. Entries are stored serialised so callers never share mutable hotels.

    Backed by ``cachetools.TTLCache`` so expired and least-recently-used
    entries are evicted; ``ResultCache`` still judges freshness from
    ``created_at``.
    """

    name = "memory"

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MEMORY_MAX_ENTRIES,
        ttl_s: float = DEFAULT_MEMORY_TTL_S,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: TTLCache[str, dict] = TTLCache(maxsize=max_entries, ttl=ttl_s, timer=timer)

    async def get(self, key: str) -> Optional[CacheEntry]:
        data = self._entries.get(key)
        return CacheEntry.from_dict(data) if data is not None else None

    async def put(self, entry: CacheEntry) -> None:
        self._entries[entry.cache_key] = entry.to_dict()

    def clear(self) -> None:
        self._entries.clear()
        logger.info("In-process cache cleared")

    def stats(self) -> dict[str, object]:
        self._entries.expire()
        return {"size": len(self._entries), "max_size": self._entries.maxsize, "entries": sorted(self._entries)}


@dataclass
class ResultCache:
    """Applies the freshness policy across ordered tiers (fastest first).

    An entry whose age is at least ``ttl_s`` is a miss. A hit in a slower
    tier is copied into the faster tiers ahead of it, and ``put`` writes
    every tier. Tier failures are logged and bypassed.
    """

    stores: Sequence[CacheStore]
    ttl_s: float
    clock: Clock = field(default=utc_now)

    def is_fresh(self, entry: CacheEntry, now: Optional[datetime] = None) -> bool:
        return entry.age_seconds(now or self.clock()) < self.ttl_s

    async def get(self, key: str) -> Optional[CachedResult]:
        now = self.clock()
        for index, store in enumerate(self.stores):
            try:
                entry = await store.get(key)
            except Exception as exc:
                self._log_unavailable("read", store, key, exc)
                continue
            if entry is None:
                continue
            if not self.is_fresh(entry, now):
                logger.debug("Stale %s cache entry for %s (age %.0fs)", store.name, key, entry.age_seconds(now))
                continue
            for faster in self.stores[:index]:
                await self._safe_put(faster, entry)
            age = entry.age_seconds(now)
            logger.info("Cache hit for %s in %s tier (age %.0fs)", key, store.name, age)
            return CachedResult(hotels=entry.payload, summary=entry.summary, age_seconds=age)
        return None

    async def put(self, key: str, hotels: Sequence[MergedHotel], summary: Optional[str] = None) -> None:
        entry = CacheEntry(cache_key=key, payload=list(hotels), created_at=self.clock(), summary=summary)
        for store in self.stores:
            await self._safe_put(store, entry)

    async def _safe_put(self, store: CacheStore, entry: CacheEntry) -> None:
        try:
            await store.put(entry)
        except Exception as exc:
            self._log_unavailable("write", store, entry.cache_key, exc)

    @staticmethod
    def _log_unavailable(operation: str, store: CacheStore, key: str, exc: Exception) -> None:
        failure = CacheUnavailable(f"{store.name} cache {operation} failed for {key}: {exc}")
        logger.warning("%s; bypassing cache", failure.message)
