"""Pydantic value objects for a room booking."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict


class Candidate(BaseModel):
    """A bookable room calendar and the mailbox that owns it."""

    model_config = ConfigDict(frozen=True)

    name: str
    owner_name: str
    owner_address: str
    calendar_id: str = ""


class BookingRequest(BaseModel):
    """The window to book, starting at the moment the duration was given."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime

    @classmethod
    def starting_now(
        cls, span: timedelta, now: datetime | None = None,
    ) -> "BookingRequest":
        start = now or datetime.now(tz=timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return cls(start_time=start, end_time=start + span)

    @property
    def span(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def duration_minutes(self) -> int:
        """Length in whole minutes, rounded up."""
        return math.ceil(self.span.total_seconds() / 60)
