"""Parse and bounds-check the meeting length the user asked for.

The platform fills the duration slot with ISO-8601 text (``PT45M``,
``PT1H30M``).  Parsing is delegated to pydantic's ``timedelta`` validation,
after checking the text is in the ISO-8601 designator form.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from pydantic import TypeAdapter, ValidationError

_TIMEDELTA = TypeAdapter(timedelta)


class DurationProblem(str, Enum):
    UNPARSEABLE = "unparseable"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"


@dataclass(frozen=True)
class DurationCheck:
    """Either an accepted ``span`` or the ``problem`` that rejected it."""

    span: timedelta | None = None
    problem: DurationProblem | None = None

    @property
    def ok(self) -> bool:
        return self.problem is None

    @property
    def minutes(self) -> int:
        """Accepted length in whole minutes, rounded up."""
        if self.span is None:
            return 0
        return math.ceil(self.span.total_seconds() / 60)


def parse_duration(raw: str | None) -> timedelta | None:
    """Return the span encoded by ``raw``, or None if it isn't a duration."""
    if raw is None:
        return None
    text = raw.strip()
    # "?" is what the platform sends when it heard something it couldn't map
    if not text or text == "?":
        return None
    # ISO-8601 designator form only; pydantic also takes "00:30:00" and bare seconds
    if not text.removeprefix("-").startswith("P"):
        return None
    try:
        return _TIMEDELTA.validate_python(text)
    except ValidationError:
        return None


def validate_duration(raw: str | None, max_minutes: int) -> DurationCheck:
    """Classify a raw duration against ``0 < span <= max_minutes``."""
    span = parse_duration(raw)
    if span is None:
        return DurationCheck(problem=DurationProblem.UNPARSEABLE)
    if span <= timedelta(0):
        return DurationCheck(problem=DurationProblem.TOO_SHORT)
    if span > timedelta(minutes=max_minutes):
        return DurationCheck(problem=DurationProblem.TOO_LONG)
    return DurationCheck(span=span)
