"""Abstract base class for calendar providers.

Defines the three calls the booking flow needs: list the calendars the
caller can see, list the events in a window on one of them, and create an
event.  Any calendar backend (Microsoft Graph, Google, ...) implements this
ABC.  Backends report failures by raising ``CalendarProviderError`` with a
typed ``FailureCause``; they never return error payloads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FailureCause:
    """Why a remote calendar call failed.

    ``kind`` is one of ``timeout``, ``network``, ``http``, ``auth``,
    ``parse`` or ``configuration``.
    """

    kind: str
    message: str
    calendar: str = ""

    def describe(self) -> str:
        prefix = f"{self.calendar}: " if self.calendar else ""
        return f"{prefix}{self.kind} error: {self.message}"


class CalendarProviderError(Exception):
    """Raised by a provider when a remote call fails."""

    def __init__(self, cause: FailureCause) -> None:
        super().__init__(cause.describe())
        self.cause = cause


@dataclass(frozen=True)
class CalendarInfo:
    """One calendar from the caller's directory."""

    id: str
    name: str
    owner_name: str = ""
    owner_address: str = ""


@dataclass
class CalendarEvent:
    """Represents a calendar event to be created."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    attendees: list[tuple[str, str]] = field(default_factory=list)  # (name, address)
    transaction_id: str = ""  # provider-side de-duplication key


class CalendarProvider(ABC):
    """Abstract calendar backend."""

    @abstractmethod
    async def list_calendars(self) -> list[CalendarInfo]:
        """Return every calendar visible to the caller, with its owner."""

    @abstractmethod
    async def get_events(
        self, calendar_id: str, start: datetime, end: datetime,
    ) -> list[dict]:
        """Return the events on ``calendar_id`` overlapping ``[start, end)``.

        An empty list means the calendar is free for the whole window.
        """

    @abstractmethod
    async def create_event(self, event: CalendarEvent) -> dict:
        """Create an event on the caller's own calendar.

        Returns:
            Dict containing at least ``"event_id"``.
        """

    async def aclose(self) -> None:
        """Release transport resources.  Safe to call multiple times."""
