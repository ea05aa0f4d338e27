"""Concurrent fan-out to every provider adapter with per-adapter isolation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from hotel_genie.hotels.models import HotelCandidate, Provider
from hotel_genie.services.providers.base import ProviderQuery, ProviderResult, UsageLedger

logger = logging.getLogger(__name__)


class Adapter(Protocol):
    provider: Provider

    async def fetch(self, query: ProviderQuery) -> ProviderResult:
        ...


@dataclass(frozen=True)
class AggregationResult:
    candidates: List[HotelCandidate]
    outcomes: List[ProviderResult]
    usage: UsageLedger = field(default_factory=UsageLedger)

    @property
    def failed(self) -> List[ProviderResult]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


async def _run_adapter(adapter: Adapter, query: ProviderQuery, timeout_s: float) -> ProviderResult:
    try:
        return await asyncio.wait_for(adapter.fetch(query), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs for '%s'", adapter.provider.value, timeout_s, query.name)
        return ProviderResult(adapter.provider, error=f"timed out after {timeout_s:.1f}s")
    except Exception as exc:
        # adapters contain their own failures; this guards against ones that do not
        logger.exception("%s adapter raised for '%s'", adapter.provider.value, query.name)
        return ProviderResult(adapter.provider, error=f"{exc.__class__.__name__}: {exc}")


@dataclass(frozen=True)
class UsageReservation:
    """Adapters cleared to run, the ones refused, and the ledger with the calls recorded."""

    runnable: List[Adapter]
    skipped: List[ProviderResult]
    usage: UsageLedger


def reserve_usage(adapters: Sequence[Adapter], usage: Optional[UsageLedger] = None) -> UsageReservation:
    """Record one call per adapter that is within budget. Never suspends."""
    ledger = usage or UsageLedger()
    runnable: List[Adapter] = []
    skipped: List[ProviderResult] = []
    for adapter in adapters:
        if ledger.allows(adapter.provider):
            runnable.append(adapter)
            ledger = ledger.record(adapter.provider)
        else:
            logger.warning("%s usage limit reached, skipping", adapter.provider.value)
            skipped.append(ProviderResult(adapter.provider, error="usage limit reached"))
    return UsageReservation(runnable=runnable, skipped=skipped, usage=ledger)


async def run_reserved(
    reservation: UsageReservation,
    query: ProviderQuery,
    *,
    timeout_s: float,
) -> AggregationResult:
    """Run the reserved adapters concurrently and concatenate the successful results.

    Results are collected by adapter index, so candidate order follows the
    adapter order. Cancelling the caller cancels every in-flight adapter call.
    """
    runnable = reservation.runnable
    outcomes: List[ProviderResult] = list(
        await asyncio.gather(*(_run_adapter(adapter, query, timeout_s) for adapter in runnable))
    )

    candidates: List[HotelCandidate] = []
    for outcome in outcomes:
        candidates.extend(outcome.candidates)

    outcomes.extend(reservation.skipped)
    failed = [outcome.provider.value for outcome in outcomes if not outcome.ok]
    logger.info(
        "Aggregated %s candidates for '%s' from %s providers (%s failed%s)",
        len(candidates),
        query.name,
        len(runnable),
        len(failed),
        f": {', '.join(failed)}" if failed else "",
    )
    return AggregationResult(candidates=candidates, outcomes=outcomes, usage=reservation.usage)


async def aggregate(
    adapters: Sequence[Adapter],
    query: ProviderQuery,
    *,
    timeout_s: float,
    usage: Optional[UsageLedger] = None,
) -> AggregationResult:
    """Reserve usage for ``adapters`` and run them; adapters over budget are skipped."""
    return await run_reserved(reserve_usage(adapters, usage), query, timeout_s=timeout_s)
