"""Per-user conversation state, restored from and written back to the platform.

The voice platform hands the previous turn's attributes back on every
invocation, so this model is the only memory the dialog has.  The booking
fields form one group: they are written together when a room is resolved
and cleared together on reset, and a snapshot that has only some of them is
rejected at load time.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from roomfinder.models.booking import BookingRequest, Candidate


class DialogState(str, Enum):
    """Where the conversation is.  IDLE is explicit, never an empty string."""

    IDLE = "IDLE"
    COLLECTING_DURATION = "COLLECTING_DURATION"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"


_BOOKING_FIELDS = (
    "owner_name",
    "owner_address",
    "room_name",
    "start_time",
    "end_time",
    "duration_minutes",
)


class SessionAttributes(BaseModel):
    """Mutable session state for one user's conversation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    state: DialogState = DialogState.IDLE

    # Resolved room and window (all or nothing)
    owner_name: Optional[str] = None
    owner_address: Optional[str] = None
    room_name: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    # Last prompt, for repeat
    last_speech: Optional[str] = None
    last_reprompt: Optional[str] = None

    @field_validator("state", mode="before")
    @classmethod
    def _blank_state_is_idle(cls, value: Any) -> Any:
        if value is None or value == "":
            return DialogState.IDLE
        return value

    @model_validator(mode="after")
    def _booking_group_is_atomic(self) -> "SessionAttributes":
        present = [getattr(self, name) is not None for name in _BOOKING_FIELDS]
        if any(present) and not all(present):
            missing = [n for n, p in zip(_BOOKING_FIELDS, present) if not p]
            raise ValueError(f"partial booking in session, missing {missing}")
        return self

    # ── Loading / saving ───────────────────────────────────────

    @classmethod
    def from_attributes(cls, raw: dict[str, Any] | None) -> "SessionAttributes":
        return cls.model_validate(raw or {})

    def to_attributes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    # ── Booking group ──────────────────────────────────────────

    @property
    def has_booking(self) -> bool:
        return self.room_name is not None

    def hold(self, candidate: Candidate, request: BookingRequest) -> None:
        """Record the resolved room and window as one write."""
        self.owner_name = candidate.owner_name
        self.owner_address = candidate.owner_address
        self.room_name = candidate.name
        self.start_time = request.start_time
        self.end_time = request.end_time
        self.duration_minutes = request.duration_minutes

    def release(self) -> None:
        for name in _BOOKING_FIELDS:
            setattr(self, name, None)

    def held_candidate(self) -> Candidate | None:
        if not self.has_booking:
            return None
        return Candidate(
            name=self.room_name,
            owner_name=self.owner_name,
            owner_address=self.owner_address,
        )

    def held_request(self) -> BookingRequest | None:
        if not self.has_booking:
            return None
        return BookingRequest(start_time=self.start_time, end_time=self.end_time)

    # ── Prompts ────────────────────────────────────────────────

    def remember_prompt(self, speech: str, reprompt: str | None) -> None:
        self.last_speech = speech
        self.last_reprompt = reprompt

    def reset(self) -> None:
        """Back to a fresh session: IDLE, no booking, nothing to repeat."""
        self.state = DialogState.IDLE
        self.release()
        self.last_speech = None
        self.last_reprompt = None
