"""Clients for upstream travel APIs and the AI annotation service."""

from .annotator import Annotator, GeminiAnnotator, RerankContext
from .geocoder import BookingGeocoder, GeocodeResult, Geocoder

__all__ = [
    "Annotator",
    "BookingGeocoder",
    "GeminiAnnotator",
    "GeocodeResult",
    "Geocoder",
    "RerankContext",
]
