"""FastAPI application for Hotel Genie."""

from .app import HotelDetailsParams, SearchParams, create_app

__all__ = ["HotelDetailsParams", "SearchParams", "create_app"]
