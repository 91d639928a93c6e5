"""Tests for SessionAttributes — the state carried between turns."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from roomfinder.models.booking import BookingRequest, Candidate
from roomfinder.models.session import DialogState, SessionAttributes

NOW = datetime(2026, 3, 15, 14, 0, tzinfo=timezone.utc)
REQUEST = BookingRequest.starting_now(timedelta(minutes=45), NOW)
TURING = Candidate(name="Turing", owner_name="Turing Room", owner_address="turing@example.com")


class TestLoading:
    def test_empty_is_idle(self):
        session = SessionAttributes.from_attributes({})
        assert session.state == DialogState.IDLE
        assert not session.has_booking

    def test_none_is_idle(self):
        assert SessionAttributes.from_attributes(None).state == DialogState.IDLE

    @pytest.mark.parametrize("blank", ["", None])
    def test_blank_state_is_explicit_idle(self, blank):
        session = SessionAttributes.from_attributes({"state": blank})
        assert session.state is DialogState.IDLE

    def test_unknown_state_rejected(self):
        with pytest.raises(ValidationError):
            SessionAttributes.from_attributes({"state": "_CONFIRMMODE"})

    def test_partial_booking_rejected(self):
        with pytest.raises(ValidationError):
            SessionAttributes.from_attributes({
                "state": "AWAITING_CONFIRMATION",
                "roomName": "Turing",
            })


class TestBookingGroup:
    def test_hold_sets_every_field(self):
        session = SessionAttributes()
        session.hold(TURING, REQUEST)

        assert session.room_name == "Turing"
        assert session.owner_name == "Turing Room"
        assert session.owner_address == "turing@example.com"
        assert session.start_time == NOW
        assert session.end_time == NOW + timedelta(minutes=45)
        assert session.duration_minutes == 45

    def test_release_clears_every_field(self):
        session = SessionAttributes()
        session.hold(TURING, REQUEST)
        session.release()

        assert not session.has_booking
        assert session.held_candidate() is None
        assert session.held_request() is None
        assert session.model_dump(exclude={"state", "last_speech", "last_reprompt"}) == {
            "owner_name": None,
            "owner_address": None,
            "room_name": None,
            "start_time": None,
            "end_time": None,
            "duration_minutes": None,
        }

    def test_held_values_round_trip(self):
        session = SessionAttributes()
        session.hold(TURING, REQUEST)
        assert session.held_candidate().owner_address == TURING.owner_address
        assert session.held_request() == REQUEST


class TestWireFormat:
    def test_camel_case_keys(self):
        session = SessionAttributes(state=DialogState.AWAITING_CONFIRMATION)
        session.hold(TURING, REQUEST)
        session.remember_prompt("Shall I?", "Yes or no?")
        wire = session.to_attributes()

        assert wire["state"] == "AWAITING_CONFIRMATION"
        assert wire["roomName"] == "Turing"
        assert wire["ownerAddress"] == "turing@example.com"
        assert wire["durationMinutes"] == 45
        assert wire["lastSpeech"] == "Shall I?"
        assert wire["lastReprompt"] == "Yes or no?"
        assert isinstance(wire["startTime"], str)

    def test_survives_a_round_trip(self):
        session = SessionAttributes(state=DialogState.AWAITING_CONFIRMATION)
        session.hold(TURING, REQUEST)
        restored = SessionAttributes.from_attributes(session.to_attributes())

        assert restored == session
        assert restored.start_time == NOW


class TestReset:
    def test_reset_clears_everything(self):
        session = SessionAttributes(state=DialogState.AWAITING_CONFIRMATION)
        session.hold(TURING, REQUEST)
        session.remember_prompt("a", "b")
        session.reset()

        assert session == SessionAttributes()
