"""Dataclasses for provider candidates and merged hotel records."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class Provider(str, Enum):
    """Upstream hotel data sources."""

    BOOKING = "booking"
    TRAVEL_ADVISOR = "travel_advisor"
    HOTELS_COM = "hotels_com"
    PRICELINE = "priceline"

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    Provider.BOOKING: "Booking.com",
    Provider.TRAVEL_ADVISOR: "TravelAdvisor",
    Provider.HOTELS_COM: "Hotels.com / Expedia",
    Provider.PRICELINE: "Priceline",
}


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_values(cls, latitude: Any, longitude: Any) -> Optional["Coordinates"]:
        """Build coordinates when both components parse as floats, else ``None``."""
        try:
            lat = float(latitude)
            lon = float(longitude)
        except (TypeError, ValueError):
            return None
        if lat != lat or lon != lon:  # NaN
            return None
        return cls(latitude=lat, longitude=lon)


@dataclass(frozen=True, slots=True)
class PriceQuote:
    amount: Optional[float] = None
    currency: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {"amount": self.amount, "currency": self.currency, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceQuote":
        return cls(amount=data.get("amount"), currency=data.get("currency"), url=data.get("url"))


@dataclass(frozen=True, slots=True)
class SourceRef:
    """Identifies one provider listing that contributed to a merged hotel."""

    provider: Provider
    source_id: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {"provider": self.provider.value, "source_id": self.source_id, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceRef":
        return cls(
            provider=Provider(data["provider"]),
            source_id=data.get("source_id"),
            url=data.get("url"),
        )


@dataclass(frozen=True, slots=True)
class StayDates:
    check_in: date
    check_out: date

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


@dataclass(slots=True)
class HotelCandidate:
    """A single provider's listing, normalised but not yet merged."""

    provider: Provider
    name: str
    source_id: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    price: Optional[PriceQuote] = None
    review_score: float = 0.0
    review_count: int = 0
    review_text: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    amenities: List[str] = field(default_factory=list)

    def source_ref(self) -> SourceRef:
        return SourceRef(provider=self.provider, source_id=self.source_id, url=self.url)


@dataclass(slots=True)
class MergedHotel:
    """One physical hotel assembled from every provider listing that matched it."""

    identity_key: str
    name: str
    address: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    sources: List[SourceRef] = field(default_factory=list)
    prices: Dict[Provider, PriceQuote] = field(default_factory=dict)
    review_score: float = 0.0
    review_count: int = 0
    review_text: Optional[str] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    amenities: List[str] = field(default_factory=list)
    agent_score: Optional[float] = None
    ai_summary: Optional[str] = None

    @property
    def providers(self) -> List[Provider]:
        seen: List[Provider] = []
        for source in self.sources:
            if source.provider not in seen:
                seen.append(source.provider)
        return seen

    def known_prices(self) -> List[float]:
        return [quote.amount for quote in self.prices.values() if quote.amount is not None]

    @property
    def best_price(self) -> Optional[float]:
        amounts = self.known_prices()
        return min(amounts) if amounts else None

    @property
    def average_price(self) -> Optional[float]:
        amounts = self.known_prices()
        return sum(amounts) / len(amounts) if amounts else None

    @property
    def price_range(self) -> Optional[tuple[float, float]]:
        amounts = self.known_prices()
        return (min(amounts), max(amounts)) if amounts else None

    def to_dict(self) -> dict[str, object]:
        price_range = self.price_range
        return {
            "identity_key": self.identity_key,
            "name": self.name,
            "address": self.address,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "sources": [source.to_dict() for source in self.sources],
            "prices": {provider.value: quote.to_dict() for provider, quote in self.prices.items()},
            "best_price": self.best_price,
            "average_price": self.average_price,
            "price_range": {"min": price_range[0], "max": price_range[1]} if price_range else None,
            "review_score": self.review_score,
            "review_count": self.review_count,
            "review_text": self.review_text,
            "image_url": self.image_url,
            "description": self.description,
            "amenities": list(self.amenities),
            "agent_score": self.agent_score,
            "ai_summary": self.ai_summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MergedHotel":
        coordinates = data.get("coordinates") or {}
        return cls(
            identity_key=data["identity_key"],
            name=data["name"],
            address=data.get("address"),
            coordinates=Coordinates.from_values(coordinates.get("latitude"), coordinates.get("longitude")),
            sources=[SourceRef.from_dict(item) for item in data.get("sources", [])],
            prices={
                Provider(provider): PriceQuote.from_dict(quote)
                for provider, quote in (data.get("prices") or {}).items()
            },
            review_score=float(data.get("review_score") or 0.0),
            review_count=int(data.get("review_count") or 0),
            review_text=data.get("review_text"),
            image_url=data.get("image_url"),
            description=data.get("description"),
            amenities=list(data.get("amenities") or []),
            agent_score=data.get("agent_score"),
            ai_summary=data.get("ai_summary"),
        )

    @classmethod
    def from_iterable(cls, hotels: Iterable["MergedHotel"]) -> List[dict[str, object]]:
        return [hotel.to_dict() for hotel in hotels]
