"""Provider adapters for upstream hotel data sources."""
from __future__ import annotations

from typing import Dict, List, Type

import httpx

from hotel_genie.config.settings import Settings
from hotel_genie.hotels.models import Provider

from .base import ProviderAdapter, ProviderConfig, ProviderQuery, ProviderResult, UsageLedger
from .booking import BookingAdapter
from .hotels_com import HotelsComAdapter
from .priceline import PricelineAdapter
from .travel_advisor import TravelAdvisorAdapter

ADAPTERS: Dict[Provider, Type[ProviderAdapter]] = {
    Provider.BOOKING: BookingAdapter,
    Provider.TRAVEL_ADVISOR: TravelAdvisorAdapter,
    Provider.HOTELS_COM: HotelsComAdapter,
    Provider.PRICELINE: PricelineAdapter,
}


def provider_config(settings: Settings, provider: Provider) -> ProviderConfig:
    return ProviderConfig(
        api_key=settings.rapidapi_key,
        host=settings.provider_host(provider),
        max_retries=settings.max_retries,
        retry_backoff_s=settings.retry_backoff_s,
        result_limit=settings.per_provider_limit,
    )


def build_adapters(settings: Settings, client: httpx.AsyncClient) -> List[ProviderAdapter]:
    return [ADAPTERS[provider](client, provider_config(settings, provider)) for provider in settings.providers]


__all__ = [
    "ADAPTERS",
    "BookingAdapter",
    "HotelsComAdapter",
    "PricelineAdapter",
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderQuery",
    "ProviderResult",
    "TravelAdvisorAdapter",
    "UsageLedger",
    "build_adapters",
    "provider_config",
]
