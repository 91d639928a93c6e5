"""Tests for the booking committer — one write, no retry."""

import asyncio
from datetime import datetime, timedelta, timezone

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import FakeCalendarProvider
from roomfinder.booking import commit_booking, transaction_id
from roomfinder.calendar_providers.base import CalendarProviderError, FailureCause
from roomfinder.models.booking import BookingRequest, Candidate

NOW = datetime(2026, 3, 15, 14, 0, tzinfo=timezone.utc)
REQUEST = BookingRequest.starting_now(timedelta(minutes=30), NOW)
TURING = Candidate(
    name="Turing",
    owner_name="Turing Room",
    owner_address="turing@rooms.example.com",
    calendar_id="cal-turing",
)


async def _commit(provider, session_id="session-1", timeout=1.0):
    return await commit_booking(
        provider,
        TURING,
        REQUEST,
        subject="Meeting room booking",
        body="Booked by voice.",
        timeout=timeout,
        session_id=session_id,
    )


class TestCommitBooking:
    async def test_success(self):
        provider = FakeCalendarProvider()
        outcome = await _commit(provider)

        assert outcome.ok
        assert outcome.room_name == "Turing"
        assert outcome.event_id == "evt_123"

    async def test_event_invites_room_owner(self):
        provider = FakeCalendarProvider()
        await _commit(provider)

        (event,) = provider.created
        assert event.summary == "Meeting room booking"
        assert event.description == "Booked by voice."
        assert event.start == NOW
        assert event.end == NOW + timedelta(minutes=30)
        assert event.attendees == [("Turing Room", "turing@rooms.example.com")]

    async def test_provider_error_is_reported_once(self):
        provider = FakeCalendarProvider(
            create_error=CalendarProviderError(FailureCause("http", "conflict")),
        )
        outcome = await _commit(provider)

        assert not outcome.ok
        assert outcome.cause.kind == "http"
        assert outcome.cause.message == "conflict"
        assert len(provider.created) == 1  # no retry

    async def test_timeout_is_not_retried(self):
        class SlowProvider(FakeCalendarProvider):
            async def create_event(self, event):
                self.created.append(event)
                await asyncio.sleep(5)
                return {"event_id": "late"}

        provider = SlowProvider()
        outcome = await _commit(provider, timeout=0.05)

        assert outcome.cause.kind == "timeout"
        assert len(provider.created) == 1


class TestTransactionId:
    def test_stable_for_same_confirmation(self):
        assert transaction_id("s1", TURING, REQUEST) == transaction_id("s1", TURING, REQUEST)

    def test_differs_per_session_and_window(self):
        later = BookingRequest.starting_now(timedelta(minutes=30), NOW + timedelta(minutes=5))
        assert transaction_id("s1", TURING, REQUEST) != transaction_id("s2", TURING, REQUEST)
        assert transaction_id("s1", TURING, REQUEST) != transaction_id("s1", TURING, later)

    async def test_sent_with_the_write(self):
        provider = FakeCalendarProvider()
        await _commit(provider, session_id="s1")
        assert provider.created[0].transaction_id == transaction_id("s1", TURING, REQUEST)
