from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from hotel_genie.hotels.models import Coordinates, MergedHotel, PriceQuote, Provider, SourceRef
from hotel_genie.storage import MemoryCacheStore, ResultCache, SqliteCacheStore
from hotel_genie.storage.cache import CacheEntry

_SYNCHRONOUS_MAP = {0: "off", 1: "normal", 2: "full", 3: "extra"}

CREATED = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _entry(key: str = "search:paris:2026-05-01:2026-05-03", created_at: datetime = CREATED) -> CacheEntry:
    hotel = MergedHotel(
        identity_key="hotellumiere@48.863,2.348",
        name="Hotel Lumiere",
        address="4 Rue Pierre Lescot, Paris",
        coordinates=Coordinates(48.8631, 2.3481),
        sources=[
            SourceRef(Provider.BOOKING, "101", "https://www.booking.com/hotel/fr/lumiere.html"),
            SourceRef(Provider.TRAVEL_ADVISOR, "188"),
        ],
        prices={Provider.BOOKING: PriceQuote(212.5, "EUR"), Provider.TRAVEL_ADVISOR: PriceQuote(180.0, "USD")},
        review_score=7.9,
        review_count=3830,
        amenities=["Spa"],
        agent_score=85.3,
    )
    return CacheEntry(cache_key=key, payload=[hotel], created_at=created_at, summary="Great pick.")


@pytest.mark.asyncio
async def test_sqlite_store_persists_entries(tmp_path) -> None:
    db_path = tmp_path / "cache" / "hotel_genie.sqlite3"
    store = SqliteCacheStore(db_path)
    await store.initialize()

    await store.put(_entry())
    loaded = await store.get("search:paris:2026-05-01:2026-05-03")

    assert loaded is not None
    assert loaded.created_at == CREATED
    assert loaded.summary == "Great pick."
    (hotel,) = loaded.payload
    assert hotel.coordinates == Coordinates(48.8631, 2.3481)
    assert hotel.providers == [Provider.BOOKING, Provider.TRAVEL_ADVISOR]
    assert hotel.best_price == 180.0
    assert await store.get("missing") is None

    writer_sync_mode = store._require_connection().execute("PRAGMA synchronous").fetchone()[0]
    assert _SYNCHRONOUS_MAP[int(writer_sync_mode)] == "normal"
    await store.close()

    conn = sqlite3.connect(db_path)
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "wal"
        assert conn.execute("PRAGMA user_version").fetchone()[0] == 1
        assert conn.execute("SELECT hotel_count FROM search_cache").fetchone()[0] == 1
    finally:
        conn.close()


@pytest.mark.asyncio
async def test_sqlite_store_overwrites_and_purges(tmp_path) -> None:
    store = SqliteCacheStore(tmp_path / "cache.sqlite3", journal_mode="delete", synchronous="full")
    await store.initialize()
    try:
        await store.put(_entry("old", CREATED - timedelta(hours=2)))
        await store.put(_entry("fresh", CREATED))
        await store.put(_entry("fresh", CREATED + timedelta(minutes=5)))

        reloaded = await store.get("fresh")
        assert reloaded is not None
        assert reloaded.created_at == CREATED + timedelta(minutes=5)

        removed = await store.purge_older_than(CREATED - timedelta(minutes=30))
        assert removed == 1
        assert await store.get("old") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sqlite_tier_survives_restart_and_warms_memory(tmp_path) -> None:
    db_path = tmp_path / "cache.sqlite3"
    clock = lambda: CREATED + timedelta(minutes=10)  # noqa: E731

    first = SqliteCacheStore(db_path)
    await first.initialize()
    await first.put(_entry("k"))
    await first.close()

    second = SqliteCacheStore(db_path)
    await second.initialize()
    memory = MemoryCacheStore()
    cache = ResultCache(stores=[memory, second], ttl_s=1800, clock=clock)
    try:
        hit = await cache.get("k")
        assert hit is not None
        assert hit.age_seconds == pytest.approx(600)
        assert memory.stats()["entries"] == ["k"]
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_uninitialised_store_is_bypassed_by_result_cache(tmp_path) -> None:
    store = SqliteCacheStore(tmp_path / "never-opened.sqlite3")
    cache = ResultCache(stores=[store], ttl_s=1800)

    await cache.put("k", _entry().payload)

    assert await cache.get("k") is None


def test_unknown_pragma_values_are_rejected(tmp_path) -> None:
    with pytest.raises(ValueError, match="journal_mode"):
        SqliteCacheStore(tmp_path / "cache.sqlite3", journal_mode="sideways")
    with pytest.raises(ValueError, match="synchronous"):
        SqliteCacheStore(tmp_path / "cache.sqlite3", synchronous="sometimes")


@pytest.mark.asyncio
async def test_reopening_does_not_rerun_migrations(tmp_path) -> None:
    db_path = tmp_path / "cache.sqlite3"
    for _ in range(2):
        store = SqliteCacheStore(db_path, journal_mode="", synchronous=None)
        await store.initialize()
        await store.put(_entry("k"))
        await store.close()

    conn = sqlite3.connect(db_path)
    try:
        assert conn.execute("PRAGMA user_version").fetchone()[0] == 1
        assert conn.execute("SELECT COUNT(*) FROM search_cache").fetchone()[0] == 1
    finally:
        conn.close()
