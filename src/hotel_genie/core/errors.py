"""Exception hierarchy shared across the search pipeline.

Only ``InvalidRequestError``, ``GeocodeFailure`` and ``NoCandidatesError``
ever reach a caller. The remaining errors are raised inside a component and
recovered at its boundary.
"""
from __future__ import annotations

from typing import Optional


class HotelGenieError(Exception):
    """Base class for errors that can be rendered as ``{"error": {code, message}}``."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {"error": {"code": self.code, "message": self.message}}


class InvalidRequestError(HotelGenieError):
    code = "invalid_request"
    status_code = 400


class GeocodeFailure(HotelGenieError):
    """The place or hotel name could not be resolved."""

    code = "location_not_found"
    status_code = 404

    def __init__(self, query: str, reason: Optional[str] = None) -> None:
        message = f"Could not resolve location '{query}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.query = query
        self.reason = reason


class NoCandidatesError(HotelGenieError):
    """The query resolved but no provider returned matching hotels."""

    code = "no_hotels_found"
    status_code = 404

    def __init__(self, query: str) -> None:
        super().__init__(f"No hotel data found for '{query}'")
        self.query = query


class UpstreamProviderError(HotelGenieError):
    """Network failure, non-2xx status or malformed payload from a provider."""

    code = "upstream_provider_error"
    status_code = 502

    def __init__(self, provider: str, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class AnnotationServiceFailure(HotelGenieError):
    code = "annotation_unavailable"
    status_code = 502


class CacheUnavailable(HotelGenieError):
    code = "cache_unavailable"
    status_code = 503
