from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from hotel_genie.config.settings import Settings
from hotel_genie.hotels.models import Coordinates, Provider, StayDates
from hotel_genie.services.providers import (
    BookingAdapter,
    HotelsComAdapter,
    PricelineAdapter,
    ProviderConfig,
    ProviderQuery,
    TravelAdvisorAdapter,
    build_adapters,
)

STAY = StayDates(date(2026, 5, 1), date(2026, 5, 3))
PARIS = Coordinates(48.8566, 2.3522)


def _config(host: str, **overrides) -> ProviderConfig:
    values = {"api_key": "secret", "host": host, "max_retries": 3, "retry_backoff_s": 0.0, "result_limit": 20}
    values.update(overrides)
    return ProviderConfig(**values)


class Router:
    """Maps request paths to queued responses and records every request."""

    def __init__(self, routes: dict[str, list[httpx.Response]]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"message": "no route"})
        template = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.mark.asyncio
async def test_booking_uses_coordinates_when_known() -> None:
    router = Router(
        {
            "/v1/hotels/search-by-coordinates": [
                httpx.Response(
                    200,
                    json={
                        "result": [
                            {"hotel_id": 1, "hotel_name": "Hotel Lumiere", "review_score": 8.6, "review_nr": 10},
                            {"hotel_id": 2, "hotel_name": "Opera Garden", "review_score": 9.0, "review_nr": 90},
                        ]
                    },
                )
            ]
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        adapter = BookingAdapter(client, _config("booking-com.p.rapidapi.com", result_limit=1))
        result = await adapter.fetch(ProviderQuery(name="Paris", stay=STAY, coordinates=PARIS))

    assert result.ok
    assert [candidate.name for candidate in result.candidates] == ["Opera Garden"]
    request = router.requests[0]
    assert request.url.params["latitude"] == "48.8566"
    assert request.url.params["checkin_date"] == "2026-05-01"
    assert request.headers["X-RapidAPI-Host"] == "booking-com.p.rapidapi.com"
    assert request.headers["X-RapidAPI-Key"] == "secret"


@pytest.mark.asyncio
async def test_booking_resolves_destination_without_coordinates() -> None:
    router = Router(
        {
            "/v1/hotels/locations": [httpx.Response(200, json=[{"dest_id": "-1456928", "dest_type": "city"}])],
            "/v1/hotels/search": [httpx.Response(200, json={"result": [{"hotel_name": "Hotel Lumiere"}]})],
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await BookingAdapter(client, _config("booking-com.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY)
        )

    assert router.paths() == ["/v1/hotels/locations", "/v1/hotels/search"]
    assert router.requests[1].url.params["dest_id"] == "-1456928"
    assert [candidate.name for candidate in result.candidates] == ["Hotel Lumiere"]


@pytest.mark.asyncio
async def test_rate_limited_request_is_retried() -> None:
    router = Router(
        {
            "/hotels/list-by-latlng": [
                httpx.Response(429, json={"message": "Too many requests"}),
                httpx.Response(200, json={"data": [{"name": "Hotel Lumiere", "rating": "4.5", "num_reviews": "12"}]}),
            ]
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        adapter = TravelAdvisorAdapter(client, _config("travel-advisor.p.rapidapi.com"))
        result = await adapter.fetch(ProviderQuery(name="Paris", stay=STAY, coordinates=PARIS))

    assert len(router.requests) == 2
    assert result.ok
    assert result.candidates[0].review_score == pytest.approx(9.0)
    assert router.requests[0].url.params["nights"] == "2"


@pytest.mark.asyncio
async def test_persistent_rate_limit_becomes_error_result() -> None:
    router = Router({"/hotels/list-by-latlng": [httpx.Response(429, json={"message": "Too many requests"})]})
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        adapter = TravelAdvisorAdapter(client, _config("travel-advisor.p.rapidapi.com", max_retries=2))
        result = await adapter.fetch(ProviderQuery(name="Paris", stay=STAY, coordinates=PARIS))

    assert len(router.requests) == 2
    assert result.candidates == []
    assert "429" in (result.error or "")


@pytest.mark.asyncio
async def test_http_error_is_contained() -> None:
    router = Router({"/v2/regions": [httpx.Response(500, text="upstream exploded")]})
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await HotelsComAdapter(client, _config("hotels-com-provider.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY)
        )

    assert not result.ok
    assert result.provider is Provider.HOTELS_COM
    assert "HTTP 500" in (result.error or "")


@pytest.mark.asyncio
async def test_malformed_payload_is_contained() -> None:
    router = Router(
        {
            "/v1/hotels/locations": [httpx.Response(200, json=[{"id": "3000035821", "type": "CITY"}])],
            "/v1/hotels/search": [httpx.Response(200, json=["not", "an", "object"])],
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await PricelineAdapter(client, _config("priceline-com-provider.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY)
        )

    assert result.candidates == []
    assert "malformed payload" in (result.error or "")


@pytest.mark.asyncio
async def test_non_json_body_is_contained() -> None:
    router = Router({"/v1/hotels/search-by-coordinates": [httpx.Response(200, text="<html>oops</html>")]})
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await BookingAdapter(client, _config("booking-com.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY, coordinates=PARIS)
        )

    assert "non-JSON" in (result.error or "")


@pytest.mark.asyncio
async def test_network_error_is_contained() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await PricelineAdapter(client, _config("priceline-com-provider.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY)
        )

    assert "ConnectError" in (result.error or "")


@pytest.mark.asyncio
async def test_hotels_com_prefers_hotel_region_for_hotel_lookups() -> None:
    regions = {
        "data": [
            {"gaiaId": "2734", "type": "CITY"},
            {"gaiaId": "9001", "type": "HOTEL"},
        ]
    }
    router = Router(
        {
            "/v2/regions": [httpx.Response(200, json=regions)],
            "/v2/hotels/search": [httpx.Response(200, json={"properties": [{"id": "5551", "name": "The Ritz"}]})],
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        adapter = HotelsComAdapter(client, _config("hotels-com-provider.p.rapidapi.com"))
        hotel = await adapter.fetch(ProviderQuery(name="The Ritz", stay=STAY, place_type="hotel"))
        city = await adapter.fetch(ProviderQuery(name="London", stay=STAY))

    searches = [request for request in router.requests if request.url.path == "/v2/hotels/search"]
    assert [request.url.params["region_id"] for request in searches] == ["9001", "2734"]
    assert hotel.candidates[0].url == "https://hotels.com/ho5551"
    assert city.ok


@pytest.mark.asyncio
async def test_priceline_without_location_returns_nothing() -> None:
    router = Router({"/v1/hotels/locations": [httpx.Response(200, json=[])]})
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await PricelineAdapter(client, _config("priceline-com-provider.p.rapidapi.com")).fetch(
            ProviderQuery(name="Atlantis", stay=STAY)
        )

    assert result.ok
    assert result.candidates == []
    assert router.paths() == ["/v1/hotels/locations"]


@pytest.mark.asyncio
async def test_travel_advisor_error_payload_is_malformed() -> None:
    router = Router(
        {"/hotels/list-by-latlng": [httpx.Response(200, content=json.dumps({"errors": [{"code": "401"}]}))]}
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
        result = await TravelAdvisorAdapter(client, _config("travel-advisor.p.rapidapi.com")).fetch(
            ProviderQuery(name="Paris", stay=STAY, coordinates=PARIS)
        )

    assert "malformed payload" in (result.error or "")


@pytest.mark.asyncio
async def test_build_adapters_follows_configured_providers() -> None:
    settings = Settings(_env_file=None, providers="priceline,booking", rapidapi_key="k", per_provider_limit=5)

    async with httpx.AsyncClient() as client:
        adapters = build_adapters(settings, client)

    assert [adapter.provider for adapter in adapters] == [Provider.PRICELINE, Provider.BOOKING]
    assert adapters[0].config.host == "priceline-com-provider.p.rapidapi.com"
    assert adapters[1].config.result_limit == 5
