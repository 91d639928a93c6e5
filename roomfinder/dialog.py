"""Session dialog controller: drives the booking conversation one turn at a time.

Each invocation is stateless.  The controller rebuilds the conversation from
the session attributes the platform hands back, routes the turn's intent to
the handler registered for ``(current state, intent name)``, and returns
exactly one response carrying the next session attributes:

    (state, session) × intent → (response, state', session')

States and what moves between them:

    IDLE ──book / yes──▶ COLLECTING_DURATION ──room found──▶ AWAITING_CONFIRMATION
                              │  ▲                                   │
                              └──┘ bad length / nothing free         └─ yes ─▶ commit, END

Help, repeat, start-over and stop are answered in every state.  Any intent
without a route gets that state's fallback prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from roomfinder.availability import NoneFree, Resolved, find_room
from roomfinder.booking import commit_booking
from roomfinder.calendar_providers.base import CalendarProvider, CalendarProviderError
from roomfinder.config import Settings, settings as default_settings
from roomfinder.duration import DurationProblem, validate_duration
from roomfinder.models.booking import BookingRequest
from roomfinder.models.envelope import (
    LAUNCH_REQUEST,
    SESSION_ENDED_REQUEST,
    InvocationEvent,
    InvocationResponse,
)
from roomfinder.models.session import DialogState, SessionAttributes
from roomfinder.resources import translate

log = logging.getLogger("roomfinder.dialog")

# Intent names as delivered by the platform
BOOK_INTENT = "BookIntent"
DURATION_INTENT = "DurationIntent"
YES_INTENT = "AMAZON.YesIntent"
NO_INTENT = "AMAZON.NoIntent"
CANCEL_INTENT = "AMAZON.CancelIntent"
STOP_INTENT = "AMAZON.StopIntent"
HELP_INTENT = "AMAZON.HelpIntent"
REPEAT_INTENT = "AMAZON.RepeatIntent"
START_OVER_INTENT = "AMAZON.StartOverIntent"

DURATION_SLOT = "Duration"

# (message, reprompt) string keys per state
_HELP_KEYS = {
    DialogState.IDLE: ("help_message", "help_reprompt"),
    DialogState.COLLECTING_DURATION: ("duration_help_message", "duration_help_reprompt"),
    DialogState.AWAITING_CONFIRMATION: ("booking_help_message", "booking_help_reprompt"),
}
_FALLBACK_KEYS = {
    DialogState.IDLE: ("unhandled_message", "unhandled_reprompt"),
    DialogState.COLLECTING_DURATION: ("duration_unhandled_message", "duration_unhandled_reprompt"),
    DialogState.AWAITING_CONFIRMATION: ("booking_unhandled_message", "booking_unhandled_reprompt"),
}
_DURATION_PROBLEM_KEYS = {
    DurationProblem.UNPARSEABLE: ("duration_unhandled_message", "duration_unhandled_reprompt"),
    DurationProblem.TOO_SHORT: ("duration_too_short_message", "duration_too_short_reprompt"),
    DurationProblem.TOO_LONG: ("duration_too_long_message", "duration_too_long_reprompt"),
}

ProviderFactory = Callable[[Optional[str]], CalendarProvider]


def redact_pii(value: str) -> str:
    """Mask PII for logging — show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


@dataclass
class Turn:
    """Everything one invocation works on."""

    event: InvocationEvent
    session: SessionAttributes
    provider: CalendarProvider | None = None


Handler = Callable[[Turn], Awaitable[InvocationResponse]]


class DialogController:
    """Routes each turn to the handler for its (state, intent) pair.

    Typical use::

        controller = DialogController(provider_factory=build_provider)
        response = await controller.handle(event)
        # → response.to_wire() goes back to the platform
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._config = config or default_settings
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

        S = DialogState
        self._routes: dict[tuple[DialogState, str], Handler] = {
            (S.IDLE, LAUNCH_REQUEST): self._welcome,
            (S.IDLE, BOOK_INTENT): self._ask_duration,
            (S.IDLE, YES_INTENT): self._book_in_current_state,
            (S.COLLECTING_DURATION, DURATION_INTENT): self._take_duration,
            (S.AWAITING_CONFIRMATION, YES_INTENT): self._book_in_current_state,
            (S.AWAITING_CONFIRMATION, BOOK_INTENT): self._commit,
        }
        for state in DialogState:
            for name in (NO_INTENT, CANCEL_INTENT, STOP_INTENT):
                self._routes[(state, name)] = self._goodbye
            self._routes[(state, HELP_INTENT)] = self._help
            self._routes[(state, REPEAT_INTENT)] = self._repeat
            self._routes[(state, START_OVER_INTENT)] = self._start_over
            self._routes[(state, SESSION_ENDED_REQUEST)] = self._session_ended

    # ── Public API ────────────────────────────────────────────

    async def handle(self, event: InvocationEvent) -> InvocationResponse:
        """Process one invocation and return its single response.

        Nothing raised while handling the turn escapes: unexpected errors
        end the session with a generic apology.
        """
        turn = Turn(event=event, session=self._load_session(event))
        log.info(
            "Invocation %s: state=%s intent=%s user=%s",
            event.request.request_id or "-",
            turn.session.state.value,
            event.intent_name,
            redact_pii(event.session.user.user_id),
        )

        try:
            return await self.dispatch(turn, event.intent_name)
        except Exception:
            log.exception(
                "Turn failed in state %s (intent %s)",
                turn.session.state.value, event.intent_name,
            )
            return self._tell(turn, self._t(turn, "generic_error"))
        finally:
            await self._close_provider(turn)

    async def dispatch(self, turn: Turn, intent_name: str) -> InvocationResponse:
        """Run the handler for ``intent_name`` in the turn's *current* state."""
        state = turn.session.state
        handler = self._routes.get((state, intent_name), self._fallback)
        log.debug("Dispatch %s in %s → %s", intent_name, state.value, handler.__name__)
        return await handler(turn)

    # ── Internal: session and responses ───────────────────────

    async def _close_provider(self, turn: Turn) -> None:
        if turn.provider is None:
            return
        try:
            await turn.provider.aclose()
        except Exception:
            log.exception("Closing the calendar provider failed")

    def _load_session(self, event: InvocationEvent) -> SessionAttributes:
        if event.session.new:
            return SessionAttributes()
        try:
            return SessionAttributes.from_attributes(event.session.attributes)
        except ValidationError as exc:
            log.warning("Discarding unreadable session attributes: %s", exc.errors()[0]["msg"])
            return SessionAttributes()

    def _transition(self, turn: Turn, new_state: DialogState) -> None:
        old = turn.session.state
        turn.session.state = new_state
        if old != new_state:
            log.info("FSM advance: %s → %s", old.value, new_state.value)

    def _t(self, turn: Turn, key: str, **fields) -> str:
        return translate(
            turn.event.request.locale, key,
            default_locale=self._config.default_locale, **fields,
        )

    def _fields(self, turn: Turn) -> dict:
        """Format fields every prompt may refer to."""
        return {
            "room": turn.session.room_name or "",
            "minutes": turn.session.duration_minutes or 0,
            "max_minutes": self._config.max_duration_minutes,
        }

    def _ask(self, turn: Turn, speech: str, reprompt: str | None) -> InvocationResponse:
        """Keep the session open; the prompt is recorded for repeat first."""
        turn.session.remember_prompt(speech, reprompt)
        return InvocationResponse.ask(speech, reprompt, turn.session.to_attributes())

    def _ask_keys(self, turn: Turn, keys: tuple[str, str], **fields) -> InvocationResponse:
        merged = {**self._fields(turn), **fields}
        message_key, reprompt_key = keys
        return self._ask(
            turn, self._t(turn, message_key, **merged), self._t(turn, reprompt_key, **merged),
        )

    def _tell(
        self,
        turn: Turn,
        speech: str,
        card_title: str | None = None,
        card_content: str | None = None,
    ) -> InvocationResponse:
        """End the session.  What persists is a fresh IDLE session."""
        if turn.session.state != DialogState.IDLE:
            log.info("FSM exit from %s", turn.session.state.value)
        turn.session.reset()
        return InvocationResponse.tell(
            speech, turn.session.to_attributes(), card_title, card_content,
        )

    def _provider(self, turn: Turn) -> CalendarProvider:
        if turn.provider is None:
            turn.provider = self._provider_factory(turn.event.session.user.access_token)
        return turn.provider

    # ── Handlers: available in every state ────────────────────

    async def _help(self, turn: Turn) -> InvocationResponse:
        return self._ask_keys(turn, _HELP_KEYS[turn.session.state])

    async def _fallback(self, turn: Turn) -> InvocationResponse:
        return self._ask_keys(turn, _FALLBACK_KEYS[turn.session.state])

    async def _repeat(self, turn: Turn) -> InvocationResponse:
        if not turn.session.last_speech:
            return await self._help(turn)
        return self._ask(turn, turn.session.last_speech, turn.session.last_reprompt)

    async def _start_over(self, turn: Turn) -> InvocationResponse:
        turn.session.reset()
        log.info("Session restarted")
        return await self.dispatch(turn, BOOK_INTENT)

    async def _goodbye(self, turn: Turn) -> InvocationResponse:
        return self._tell(turn, self._t(turn, "stop_message"))

    async def _session_ended(self, turn: Turn) -> InvocationResponse:
        log.info("Platform ended the session: %s", turn.event.request.reason or "-")
        return self._tell(turn, self._t(turn, "stop_message"))

    async def _book_in_current_state(self, turn: Turn) -> InvocationResponse:
        """An affirmative answer means book, whatever booking is in this state."""
        return await self.dispatch(turn, BOOK_INTENT)

    # ── Handlers: IDLE ────────────────────────────────────────

    async def _welcome(self, turn: Turn) -> InvocationResponse:
        return self._ask_keys(turn, ("welcome_message", "welcome_reprompt"))

    async def _ask_duration(self, turn: Turn) -> InvocationResponse:
        self._transition(turn, DialogState.COLLECTING_DURATION)
        return self._ask_keys(turn, ("duration_message", "duration_reprompt"))

    # ── Handlers: COLLECTING_DURATION ─────────────────────────

    async def _take_duration(self, turn: Turn) -> InvocationResponse:
        raw = turn.event.slot_value(DURATION_SLOT)
        check = validate_duration(raw, self._config.max_duration_minutes)
        if not check.ok:
            log.info("Rejected duration %r: %s", raw, check.problem.value)
            return self._ask_keys(turn, _DURATION_PROBLEM_KEYS[check.problem])

        request = BookingRequest.starting_now(check.span, self._clock())

        try:
            provider = self._provider(turn)
        except CalendarProviderError as exc:
            return self._room_error(turn, exc.cause.describe())

        outcome = await find_room(
            provider,
            request,
            self._config.bookable_rooms,
            self._config.availability_timeout_seconds,
        )

        if isinstance(outcome, Resolved):
            turn.session.hold(outcome.candidate, request)
            self._transition(turn, DialogState.AWAITING_CONFIRMATION)
            return self._ask_keys(turn, ("room_available_message", "room_available_reprompt"))

        if isinstance(outcome, NoneFree):
            return self._ask_keys(
                turn,
                ("duration_unavailable_message", "duration_unavailable_reprompt"),
                minutes=request.duration_minutes,
            )

        return self._room_error(turn, outcome.cause.describe())

    def _room_error(self, turn: Turn, detail: str) -> InvocationResponse:
        log.error("Room search failed: %s", detail)
        return self._tell(
            turn,
            self._t(turn, "room_error"),
            self._t(turn, "room_error_card_title"),
            detail,
        )

    # ── Handlers: AWAITING_CONFIRMATION ───────────────────────

    async def _commit(self, turn: Turn) -> InvocationResponse:
        candidate = turn.session.held_candidate()
        request = turn.session.held_request()
        if candidate is None or request is None:
            # Confirmation without a held room: ask again from the start
            log.warning("Confirmation with no room held, restarting")
            self._transition(turn, DialogState.COLLECTING_DURATION)
            return self._ask_keys(turn, ("duration_message", "duration_reprompt"))

        fields = self._fields(turn)

        try:
            provider = self._provider(turn)
        except CalendarProviderError as exc:
            return self._booking_error(turn, exc.cause.describe())

        outcome = await commit_booking(
            provider,
            candidate,
            request,
            subject=self._config.meeting_subject,
            body=self._config.meeting_body,
            timeout=self._config.booking_timeout_seconds,
            session_id=turn.event.session.session_id,
        )

        if not outcome.ok:
            return self._booking_error(turn, outcome.cause.describe())

        return self._tell(
            turn,
            self._t(turn, "room_booked", **fields),
            self._t(turn, "card_room_booked_title", **fields),
            self._t(
                turn,
                "card_room_booked_content",
                start=request.start_time.strftime("%H:%M"),
                end=request.end_time.strftime("%H:%M"),
                **fields,
            ),
        )

    def _booking_error(self, turn: Turn, detail: str) -> InvocationResponse:
        log.error("Booking failed: %s", detail)
        return self._tell(
            turn,
            self._t(turn, "booking_error"),
            self._t(turn, "booking_error_card_title"),
            detail,
        )
