from __future__ import annotations

import pytest

from hotel_genie.hotels.models import Coordinates, HotelCandidate, Provider
from hotel_genie.hotels.normalizer import (
    build_booking_candidates,
    build_hotels_com_candidates,
    build_priceline_candidates,
    build_travel_advisor_candidates,
    normalize_review_score,
    top_by_review_count,
)


@pytest.mark.parametrize(
    ("value", "scale", "expected"),
    [
        (8.4, 10, 8.4),
        (4.5, 5, 9.0),
        ("9.1", None, 9.1),
        (17.0, None, 8.5),
        (None, 10, 0.0),
        ("n/a", 10, 0.0),
        (-3, None, 0.0),
        ("-3", None, 0.0),
        ("-4.5", 5, 0.0),
        (40, None, 10.0),
    ],
)
def test_normalize_review_score(value, scale, expected) -> None:
    assert normalize_review_score(value, scale) == pytest.approx(expected)


def test_booking_payload_becomes_candidates() -> None:
    payload = {
        "result": [
            {
                "hotel_id": 101,
                "hotel_name": "Hotel Lumiere",
                "address": "4 Rue Pierre Lescot",
                "city": "Paris",
                "latitude": 48.8625,
                "longitude": 2.3481,
                "min_total_price": 212.5,
                "currency_code": "EUR",
                "review_score": 8.6,
                "review_nr": 1520,
                "review_score_word": "Fabulous",
                "url": "https://www.booking.com/hotel/fr/lumiere.html",
                "max_1440_photo_url": "https://cf.bstatic.com/lumiere.jpg",
            },
            {"hotel_id": 102, "hotel_name": "  "},
        ]
    }

    candidates = build_booking_candidates(payload)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.provider is Provider.BOOKING
    assert candidate.source_id == "101"
    assert candidate.address == "4 Rue Pierre Lescot, Paris"
    assert candidate.coordinates == Coordinates(48.8625, 2.3481)
    assert candidate.price is not None and candidate.price.amount == 212.5
    assert candidate.price.currency == "EUR"
    assert candidate.review_score == pytest.approx(8.6)
    assert candidate.review_count == 1520
    assert candidate.review_text == "Fabulous"


def test_booking_falls_back_to_gross_price_and_tolerates_missing_fields() -> None:
    payload = {
        "result": [
            {
                "hotel_name": "Budget Inn",
                "price_breakdown": {"gross_price": "99.90", "currency": "USD"},
                "latitude": None,
                "longitude": 2.1,
                "review_score": None,
            }
        ]
    }

    (candidate,) = build_booking_candidates(payload)

    assert candidate.coordinates is None
    assert candidate.price is not None and candidate.price.amount == pytest.approx(99.9)
    assert candidate.review_score == 0.0
    assert candidate.review_count == 0


def test_travel_advisor_rescales_five_point_ratings() -> None:
    payload = {
        "data": [
            {
                "location_id": "188",
                "name": "Hotel Lumiere",
                "latitude": "48.86251",
                "longitude": "2.34808",
                "rating": "4.5",
                "num_reviews": "2,310",
                "price": "$180 - $240",
                "web_url": "https://www.tripadvisor.com/Hotel_Review-188",
                "address_obj": {"address_string": "4 Rue Pierre Lescot, 75001 Paris"},
            },
            {"location_id": "999", "ad_position": "inline"},
        ]
    }

    candidates = build_travel_advisor_candidates(payload, currency="USD")

    assert [candidate.name for candidate in candidates] == ["Hotel Lumiere"]
    candidate = candidates[0]
    assert candidate.review_score == pytest.approx(9.0)
    assert candidate.review_count == 2310
    assert candidate.price is not None and candidate.price.amount == 180.0
    assert candidate.price.currency == "USD"
    assert candidate.address == "4 Rue Pierre Lescot, 75001 Paris"


def test_hotels_com_builds_url_from_id() -> None:
    payload = {
        "properties": [
            {
                "id": "5551",
                "name": "Le Marais Suites",
                "mapMarker": {"latLong": {"latitude": 48.857, "longitude": 2.358}},
                "price": {"lead": {"amount": 150.0, "currencyInfo": {"code": "USD"}}},
                "reviews": {"score": 9.2, "total": 410, "label": "Wonderful"},
                "neighborhood": {"name": "Le Marais"},
            }
        ]
    }

    (candidate,) = build_hotels_com_candidates(payload)

    assert candidate.url == "https://hotels.com/ho5551"
    assert candidate.price is not None and candidate.price.url == candidate.url
    assert candidate.coordinates == Coordinates(48.857, 2.358)
    assert candidate.review_text == "Wonderful"
    assert candidate.address == "Le Marais"


def test_priceline_reads_nested_address() -> None:
    payload = {
        "hotels": [
            {
                "hotelId": "77",
                "name": "Opera Garden",
                "location": {
                    "address": {"addressLine1": "12 Rue Scribe", "cityName": "Paris"},
                    "latitude": 48.871,
                    "longitude": 2.331,
                },
                "ratesSummary": {"minPrice": "189.00", "minCurrencyCode": "USD"},
                "overallGuestRating": 8.8,
                "totalReviewCount": 95,
            }
        ]
    }

    (candidate,) = build_priceline_candidates(payload)

    assert candidate.address == "12 Rue Scribe, Paris"
    assert candidate.price is not None and candidate.price.amount == 189.0
    assert candidate.review_count == 95


def test_non_object_payload_is_malformed() -> None:
    with pytest.raises(ValueError):
        build_booking_candidates(["unexpected"])


def test_missing_list_yields_no_candidates() -> None:
    assert build_priceline_candidates({"hotels": None}) == []


def test_top_by_review_count_keeps_most_reviewed() -> None:
    candidates = [
        HotelCandidate(provider=Provider.BOOKING, name=name, review_count=count)
        for name, count in [("A", 5), ("B", 50), ("C", 0), ("D", 50)]
    ]

    kept = top_by_review_count(candidates, 2)

    assert [candidate.name for candidate in kept] == ["B", "D"]
    assert len(top_by_review_count(candidates, None)) == 4
