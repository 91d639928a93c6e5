"""Commit a confirmed booking as a single calendar write.

The meeting goes on the caller's own calendar with the room's mailbox as a
required attendee.  There is exactly one attempt and no retry: after an
ambiguous failure a second write could book the room twice.  A platform
that replays the same confirmation is covered by the transaction id, which
is derived from the session, room and start time so a replay carries the
same key and the provider drops the duplicate.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from roomfinder.calendar_providers.base import (
    CalendarEvent,
    CalendarProvider,
    CalendarProviderError,
    FailureCause,
)
from roomfinder.models.booking import BookingRequest, Candidate

log = logging.getLogger("roomfinder.booking")

_TRANSACTION_NAMESPACE = uuid.UUID("5b0c3a4e-8f6d-4d2b-9a51-7f1e2c9d0b31")


@dataclass(frozen=True)
class BookingOutcome:
    """Result of the one booking attempt."""

    room_name: str
    event_id: str = ""
    cause: FailureCause | None = None

    @property
    def ok(self) -> bool:
        return self.cause is None


def transaction_id(session_id: str, candidate: Candidate, request: BookingRequest) -> str:
    """Stable de-duplication key for one confirmation."""
    key = f"{session_id}|{candidate.owner_address}|{request.start_time.isoformat()}"
    return uuid.uuid5(_TRANSACTION_NAMESPACE, key).hex


async def commit_booking(
    provider: CalendarProvider,
    candidate: Candidate,
    request: BookingRequest,
    subject: str,
    body: str,
    timeout: float,
    session_id: str = "",
) -> BookingOutcome:
    """Create the meeting and invite the room.  Never retries."""
    event = CalendarEvent(
        summary=subject,
        start=request.start_time,
        end=request.end_time,
        description=body,
        attendees=[(candidate.owner_name, candidate.owner_address)],
        transaction_id=transaction_id(session_id, candidate, request),
    )

    try:
        result = await asyncio.wait_for(provider.create_event(event), timeout)
    except asyncio.TimeoutError:
        # The write may still land; never retried
        cause = FailureCause("timeout", f"booking gave no answer within {timeout:g}s", candidate.name)
        log.error("Booking %s timed out", candidate.name)
        return BookingOutcome(room_name=candidate.name, cause=cause)
    except CalendarProviderError as exc:
        log.error("Booking %s failed: %s", candidate.name, exc.cause.describe())
        return BookingOutcome(room_name=candidate.name, cause=exc.cause)

    event_id = result.get("event_id", "")
    log.info(
        "Booked %s for %d minutes (event %s)",
        candidate.name, request.duration_minutes, event_id or "?",
    )
    return BookingOutcome(room_name=candidate.name, event_id=event_id)
