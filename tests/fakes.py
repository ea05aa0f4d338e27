"""In-memory collaborators shared by the service and API tests."""
from __future__ import annotations

from typing import Iterable, Optional

from hotel_genie.hotels.models import Coordinates, HotelCandidate, PriceQuote, Provider
from hotel_genie.services.geocoder import GeocodeResult
from hotel_genie.services.providers.base import ProviderQuery, ProviderResult


class FakeGeocoder:
    def __init__(self, result: Optional[GeocodeResult]) -> None:
        self.result = result
        self.calls: list[str] = []

    async def geocode(self, text: str) -> Optional[GeocodeResult]:
        self.calls.append(text)
        return self.result


class FakeAdapter:
    def __init__(self, provider: Provider, candidates: Iterable[HotelCandidate] = ()) -> None:
        self.provider = provider
        self.candidates = list(candidates)
        self.queries: list[ProviderQuery] = []

    async def fetch(self, query: ProviderQuery) -> ProviderResult:
        self.queries.append(query)
        return ProviderResult(self.provider, candidates=list(self.candidates))


class FakeAnnotator:
    def __init__(self, rerank_reply: str = "", summary: str = "") -> None:
        self.rerank_reply = rerank_reply
        self.summary = summary
        self.rerank_calls = 0
        self.summary_calls = 0

    async def rerank(self, hotels, context) -> str:
        self.rerank_calls += 1
        return self.rerank_reply

    async def summarize_hotel(self, hotel) -> str:
        self.summary_calls += 1
        return self.summary


PARIS = GeocodeResult(type="city", name="Paris", latitude=48.8566, longitude=2.3522)
LUMIERE_POSITION = Coordinates(48.8631, 2.3481)


def lumiere(provider: Provider, source_id: str, *, score: float, count: int, price: float) -> HotelCandidate:
    return HotelCandidate(
        provider=provider,
        name="Hotel Lumiere",
        source_id=source_id,
        address="4 Rue Pierre Lescot, Paris",
        coordinates=LUMIERE_POSITION,
        price=PriceQuote(price, "USD"),
        review_score=score,
        review_count=count,
        amenities=["Free WiFi"],
    )


def paris_adapters() -> list[FakeAdapter]:
    return [
        FakeAdapter(
            Provider.BOOKING,
            [
                lumiere(Provider.BOOKING, "101", score=8.0, count=100, price=212.5),
                HotelCandidate(
                    provider=Provider.BOOKING,
                    name="Opera Garden",
                    coordinates=Coordinates(48.871, 2.331),
                    price=PriceQuote(150.0, "USD"),
                    review_score=7.0,
                    review_count=20,
                ),
            ],
        ),
        FakeAdapter(Provider.TRAVEL_ADVISOR, [lumiere(Provider.TRAVEL_ADVISOR, "188", score=6.0, count=50, price=180.0)]),
    ]
