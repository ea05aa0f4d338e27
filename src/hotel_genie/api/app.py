"""HTTP surface for the search service."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Annotated, Any, AsyncIterator, List, Literal, Optional

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from hotel_genie.config.settings import Settings
from hotel_genie.core.errors import HotelGenieError, InvalidRequestError
from hotel_genie.core.logging import configure_logging
from hotel_genie.hotels.models import Provider
from hotel_genie.hotels.ranking import filter_hotels
from hotel_genie.search.service import HotelSearchService, build_service
from hotel_genie.storage.cache import utc_now
from hotel_genie.storage.sqlite_store import SqliteCacheStore

logger = logging.getLogger(__name__)


class StayParams(BaseModel):
    checkin: date
    checkout: date

    @model_validator(mode="after")
    def _checkout_after_checkin(self) -> "StayParams":
        if self.checkout <= self.checkin:
            raise ValueError("checkout must be after checkin")
        return self


class SearchParams(StayParams):
    query: str = Field(min_length=1)
    min_rating: Optional[float] = Field(default=None, ge=0, le=10)
    max_price: Optional[float] = Field(default=None, ge=0)
    amenities: List[str] = Field(default_factory=list)
    sort_by: Optional[Literal["price", "rating", "reviews", "name"]] = None


class HotelDetailsParams(StayParams):
    hotel_name: str = Field(min_length=1)
    city: Optional[str] = None


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = [str(item) for item in error.get("loc", ())]
        if loc and loc[0] in ("query", "body"):
            loc = loc[1:]
        message = str(error.get("msg", "invalid value"))
        parts.append(f"{'.'.join(loc)}: {message}" if loc else message)
    return "; ".join(parts) or "invalid request"


def get_service(request: Request) -> HotelSearchService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HotelGenieError("search service is not ready")
    return service


def create_app(settings: Optional[Settings] = None, service: Optional[HotelSearchService] = None) -> FastAPI:
    """Build the application.

    When ``service`` is given it is used as-is and the lifespan opens nothing.
    Otherwise the lifespan owns the shared HTTP client and the SQLite tier.
    """
    settings = settings or (service.settings if service is not None else Settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.service is not None:
            yield
            return

        settings.ensure_directories()
        configure_logging(settings.log_level, settings.log_dir)
        stores = []
        sqlite_store: Optional[SqliteCacheStore] = None
        if settings.cache_sqlite_enabled:
            sqlite_store = SqliteCacheStore(
                settings.cache_sqlite_path,
                journal_mode=settings.cache_sqlite_journal_mode,
                synchronous=settings.cache_sqlite_synchronous,
            )
            await sqlite_store.initialize()
            await sqlite_store.purge_older_than(utc_now() - timedelta(seconds=settings.cache_ttl_s))
            stores.append(sqlite_store)

        async with httpx.AsyncClient(timeout=settings.provider_timeout_s) as client:
            app.state.service = build_service(settings, client, stores=stores)
            logger.info("Hotel Genie API ready")
            try:
                yield
            finally:
                app.state.service = None
                if sqlite_store is not None:
                    await sqlite_store.close()
                logger.info("Hotel Genie API shut down")

    app = FastAPI(title="Hotel Genie", version="0.1.0", lifespan=lifespan)
    app.state.service = service
    app.state.settings = settings

    @app.exception_handler(HotelGenieError)
    async def _handle_hotel_genie_error(request: Request, exc: HotelGenieError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = InvalidRequestError(_describe_validation_error(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/search")
    async def search(
        params: Annotated[SearchParams, Query()],
        service: HotelSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        outcome = await service.search(params.query, params.checkin, params.checkout)
        hotels = filter_hotels(
            outcome.hotels,
            min_rating=params.min_rating,
            max_price=params.max_price,
            amenities=params.amenities or None,
            sort_by=params.sort_by,
        )
        return {
            "hotels": [hotel.to_dict() for hotel in hotels],
            "summary": outcome.summary,
            "cached": outcome.cached,
        }

    @app.get("/hotel-details")
    async def hotel_details(
        params: Annotated[HotelDetailsParams, Query()],
        service: HotelSearchService = Depends(get_service),
    ) -> dict[str, Any]:
        outcome = await service.hotel_details(params.hotel_name, params.checkin, params.checkout, city=params.city)
        return {
            "hotel": outcome.hotels[0].to_dict(),
            "summary": outcome.summary,
            "cached": outcome.cached,
        }

    @app.get("/providers")
    async def providers() -> dict[str, Any]:
        enabled = set(settings.providers)
        return {
            "providers": [
                {"id": provider.value, "name": provider.label, "enabled": provider in enabled}
                for provider in Provider
            ],
            "annotation_enabled": settings.annotation_enabled,
        }

    return app
