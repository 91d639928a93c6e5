"""Calendar provider abstractions and implementations."""

from .base import (
    CalendarEvent,
    CalendarInfo,
    CalendarProvider,
    CalendarProviderError,
    FailureCause,
)

__all__ = [
    "CalendarEvent",
    "CalendarInfo",
    "CalendarProvider",
    "CalendarProviderError",
    "FailureCause",
]
