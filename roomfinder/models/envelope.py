"""Pydantic models for the voice platform's request and response envelopes.

One ``InvocationEvent`` arrives per user turn and exactly one
``InvocationResponse`` goes back.  Field names follow the platform's
camelCase JSON; attributes are snake_case in Python.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LAUNCH_REQUEST = "LaunchRequest"
INTENT_REQUEST = "IntentRequest"
SESSION_ENDED_REQUEST = "SessionEndedRequest"


class _Envelope(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )


# ── Inbound ─────────────────────────────────────────────────────


class Application(_Envelope):
    application_id: str = ""


class User(_Envelope):
    user_id: str = ""
    access_token: Optional[str] = None


class Session(_Envelope):
    session_id: str = ""
    new: bool = False
    application: Application = Field(default_factory=Application)
    attributes: dict[str, Any] = Field(default_factory=dict)
    user: User = Field(default_factory=User)


class Slot(_Envelope):
    name: str
    value: Optional[str] = None


class Intent(_Envelope):
    name: str
    slots: dict[str, Slot] = Field(default_factory=dict)


class Request(_Envelope):
    type: str
    request_id: str = ""
    locale: str = ""
    timestamp: str = ""
    intent: Optional[Intent] = None
    reason: Optional[str] = None


class InvocationEvent(_Envelope):
    """One user turn as delivered by the platform."""

    version: str = "1.0"
    session: Session = Field(default_factory=Session)
    request: Request

    @property
    def intent_name(self) -> str:
        """The name the dialog dispatches on.

        Lifecycle requests (launch, session end) have no intent and are
        dispatched under their request type.
        """
        if self.request.type == INTENT_REQUEST and self.request.intent:
            return self.request.intent.name
        return self.request.type

    def slot_value(self, name: str) -> str | None:
        intent = self.request.intent
        if not intent or name not in intent.slots:
            return None
        return intent.slots[name].value


# ── Outbound ────────────────────────────────────────────────────


class OutputSpeech(_Envelope):
    type: str = "PlainText"
    text: str


class Reprompt(_Envelope):
    output_speech: OutputSpeech


class Card(_Envelope):
    type: str = "Simple"
    title: str
    content: str


class ResponseBody(_Envelope):
    output_speech: OutputSpeech
    reprompt: Optional[Reprompt] = None
    card: Optional[Card] = None
    should_end_session: bool


class InvocationResponse(_Envelope):
    """The single reply to an ``InvocationEvent``."""

    version: str = "1.0"
    session_attributes: dict[str, Any] = Field(default_factory=dict)
    response: ResponseBody

    @classmethod
    def ask(
        cls, speech: str, reprompt: str | None, attributes: dict[str, Any],
    ) -> "InvocationResponse":
        """A prompt that keeps the session open."""
        return cls(
            session_attributes=attributes,
            response=ResponseBody(
                output_speech=OutputSpeech(text=speech),
                reprompt=Reprompt(output_speech=OutputSpeech(text=reprompt))
                if reprompt
                else None,
                should_end_session=False,
            ),
        )

    @classmethod
    def tell(
        cls,
        speech: str,
        attributes: dict[str, Any],
        card_title: str | None = None,
        card_content: str | None = None,
    ) -> "InvocationResponse":
        """A closing statement, optionally with a card, that ends the session."""
        card = None
        if card_title:
            card = Card(title=card_title, content=card_content or "")
        return cls(
            session_attributes=attributes,
            response=ResponseBody(
                output_speech=OutputSpeech(text=speech),
                card=card,
                should_end_session=True,
            ),
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
