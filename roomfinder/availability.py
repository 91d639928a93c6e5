"""Find a free room by probing every candidate calendar at once.

One availability query per candidate runs as its own task.  The first
candidate that reports no events in the window wins and the rest are
cancelled; their late answers are never looked at.  If nobody is free, the
outcome depends on how the queries settled: all busy means ``NoneFree``,
while any error means ``Failed`` with the first error seen, because a
broken lookup must not pass for a fully booked building.

"First" is completion order.  With several free rooms, repeated searches
may pick different winners; any of them is a correct answer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Union

from roomfinder.calendar_providers.base import (
    CalendarInfo,
    CalendarProvider,
    CalendarProviderError,
    FailureCause,
)
from roomfinder.models.booking import BookingRequest, Candidate

log = logging.getLogger("roomfinder.availability")


class ProbeStatus(str, Enum):
    FREE = "free"
    BUSY = "busy"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    """How one candidate's availability query settled."""

    candidate: Candidate
    status: ProbeStatus
    cause: FailureCause | None = None


# ── Outcomes ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Resolved:
    candidate: Candidate


@dataclass(frozen=True)
class NoneFree:
    pass


@dataclass(frozen=True)
class Failed:
    cause: FailureCause


AvailabilityOutcome = Union[Resolved, NoneFree, Failed]


# ── Candidates ───────────────────────────────────────────────────


def select_candidates(
    calendars: Iterable[CalendarInfo], allowed_names: Iterable[str],
) -> list[Candidate]:
    """Keep the directory entries whose name is on the bookable allow-list.

    Names are compared case-insensitively.  A calendar without an owner
    mailbox can't be invited to the meeting, so it is skipped.
    """
    allowed = {name.strip().casefold() for name in allowed_names}
    candidates: list[Candidate] = []
    seen: set[str] = set()

    for cal in calendars:
        if cal.name.strip().casefold() not in allowed or cal.id in seen:
            continue
        if not cal.owner_address:
            log.warning("Bookable calendar %r has no owner address, skipping", cal.name)
            continue
        seen.add(cal.id)
        candidates.append(
            Candidate(
                name=cal.name,
                owner_name=cal.owner_name or cal.name,
                owner_address=cal.owner_address,
                calendar_id=cal.id,
            )
        )

    return candidates


# ── Probing ──────────────────────────────────────────────────────


async def probe(
    provider: CalendarProvider,
    candidate: Candidate,
    request: BookingRequest,
    timeout: float,
) -> ProbeResult:
    """Ask one calendar whether anything overlaps the requested window."""
    try:
        events = await asyncio.wait_for(
            provider.get_events(
                candidate.calendar_id, request.start_time, request.end_time,
            ),
            timeout,
        )
    except asyncio.TimeoutError:
        cause = FailureCause("timeout", f"no answer within {timeout:g}s", candidate.name)
        return ProbeResult(candidate, ProbeStatus.ERROR, cause)
    except CalendarProviderError as exc:
        cause = replace(exc.cause, calendar=candidate.name)
        return ProbeResult(candidate, ProbeStatus.ERROR, cause)

    status = ProbeStatus.BUSY if events else ProbeStatus.FREE
    return ProbeResult(candidate, status)


async def resolve_room(
    provider: CalendarProvider,
    request: BookingRequest,
    candidates: list[Candidate],
    timeout: float,
) -> AvailabilityOutcome:
    """Race the candidates; first free wins, otherwise classify the misses."""
    if not candidates:
        return Failed(FailureCause("configuration", "no bookable rooms are visible"))

    pending = {
        asyncio.create_task(probe(provider, c, request, timeout), name=f"probe:{c.name}")
        for c in candidates
    }
    first_error: FailureCause | None = None
    busy = 0

    try:
        while pending:
            done, pending = await asyncio.wait(
                pending, return_when=asyncio.FIRST_COMPLETED,
            )
            # A free result in this batch beats any error beside it
            results = sorted(
                (task.result() for task in done),
                key=lambda r: r.status != ProbeStatus.FREE,
            )
            for result in results:
                if result.status == ProbeStatus.FREE:
                    log.info(
                        "Room %s is free (%d probes abandoned)",
                        result.candidate.name, len(pending),
                    )
                    return Resolved(result.candidate)
                if result.status == ProbeStatus.BUSY:
                    busy += 1
                    log.debug("Room %s is busy", result.candidate.name)
                else:
                    log.warning("Probe failed: %s", result.cause.describe())
                    if first_error is None:
                        first_error = result.cause
    finally:
        for task in pending:
            task.cancel()

    if first_error is not None:
        return Failed(first_error)

    log.info("All %d candidate rooms are busy", busy)
    return NoneFree()


async def find_room(
    provider: CalendarProvider,
    request: BookingRequest,
    allowed_names: Iterable[str],
    timeout: float,
) -> AvailabilityOutcome:
    """Read the calendar directory, then race the bookable rooms in it."""
    try:
        calendars = await asyncio.wait_for(provider.list_calendars(), timeout)
    except asyncio.TimeoutError:
        return Failed(FailureCause("timeout", f"calendar directory gave no answer within {timeout:g}s"))
    except CalendarProviderError as exc:
        log.warning("Calendar directory lookup failed: %s", exc.cause.describe())
        return Failed(exc.cause)

    candidates = select_candidates(calendars, allowed_names)
    log.info(
        "Probing %d of %d calendars for %s to %s",
        len(candidates), len(calendars),
        request.start_time.isoformat(), request.end_time.isoformat(),
    )
    return await resolve_room(provider, request, candidates, timeout)
