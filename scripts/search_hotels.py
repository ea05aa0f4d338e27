"""Entry point for manual searches from the command line."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date, timedelta
from typing import Optional

import httpx

from hotel_genie.config.settings import Settings
from hotel_genie.core.errors import HotelGenieError
from hotel_genie.core.logging import configure_logging
from hotel_genie.hotels.ranking import SORT_OPTIONS, filter_hotels
from hotel_genie.search.service import SearchOutcome, build_service
from hotel_genie.storage.sqlite_store import SqliteCacheStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search hotels across every configured provider")
    parser.add_argument("query", help="City, district or hotel name")
    parser.add_argument(
        "--checkin",
        type=date.fromisoformat,
        default=None,
        help="Check-in date (YYYY-MM-DD, defaults to 14 days from today)",
    )
    parser.add_argument(
        "--nights",
        type=int,
        default=1,
        help="Length of stay when --checkout is not given",
    )
    parser.add_argument("--checkout", type=date.fromisoformat, default=None, help="Check-out date (YYYY-MM-DD)")
    parser.add_argument(
        "--hotel",
        action="store_true",
        help="Treat the query as a single hotel name and print its details",
    )
    parser.add_argument("--min-rating", type=float, default=None)
    parser.add_argument("--max-price", type=float, default=None)
    parser.add_argument("--sort-by", choices=SORT_OPTIONS, default=None)
    parser.add_argument("--limit", type=int, default=10, help="Hotels to print")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON payload")
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Skip the durable SQLite cache tier for this run",
    )
    return parser


def _print_outcome(outcome: SearchOutcome, limit: int) -> None:
    label = "cached" if outcome.cached else "fresh"
    print(f"{len(outcome.hotels)} hotels ({label})")
    for position, hotel in enumerate(outcome.hotels[:limit], start=1):
        price = f"{hotel.best_price:.2f}" if hotel.best_price is not None else "n/a"
        providers = ", ".join(provider.label for provider in hotel.providers)
        print(
            f"{position:>2}. {hotel.name} | score {hotel.agent_score} | "
            f"reviews {hotel.review_score:.1f} ({hotel.review_count}) | from {price} | {providers}"
        )
    if outcome.summary:
        print()
        print(outcome.summary)


async def run(settings: Settings, args: argparse.Namespace, check_in: date, check_out: date) -> int:
    sqlite_store: Optional[SqliteCacheStore] = None
    stores = []
    if settings.cache_sqlite_enabled and not args.no_cache:
        sqlite_store = SqliteCacheStore(
            settings.cache_sqlite_path,
            journal_mode=settings.cache_sqlite_journal_mode,
            synchronous=settings.cache_sqlite_synchronous,
        )
        await sqlite_store.initialize()
        stores.append(sqlite_store)

    try:
        async with httpx.AsyncClient(timeout=settings.provider_timeout_s) as client:
            service = build_service(settings, client, stores=stores)
            try:
                if args.hotel:
                    outcome = await service.hotel_details(args.query, check_in, check_out)
                else:
                    outcome = await service.search(args.query, check_in, check_out)
            except HotelGenieError as exc:
                logger.error("Search failed: %s", exc.message)
                print(json.dumps(exc.to_dict(), indent=2))
                return 1
    finally:
        if sqlite_store is not None:
            await sqlite_store.close()

    hotels = filter_hotels(
        outcome.hotels,
        min_rating=args.min_rating,
        max_price=args.max_price,
        sort_by=args.sort_by,
    )
    outcome = SearchOutcome(hotels=hotels, summary=outcome.summary, cached=outcome.cached)
    if args.json:
        payload = {
            "hotels": [hotel.to_dict() for hotel in outcome.hotels[: args.limit]],
            "summary": outcome.summary,
            "cached": outcome.cached,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        _print_outcome(outcome, args.limit)
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()

    check_in = args.checkin or (date.today() + timedelta(days=14))
    check_out = args.checkout or (check_in + timedelta(days=max(args.nights, 1)))
    if check_out <= check_in:
        parser.error("--checkout must be after --checkin")

    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    logger.info(
        "Searching '%s' for %s -> %s (providers: %s)",
        args.query,
        check_in.isoformat(),
        check_out.isoformat(),
        ", ".join(provider.value for provider in settings.providers),
    )

    raise SystemExit(asyncio.run(run(settings, args, check_in, check_out)))


if __name__ == "__main__":
    main()
