"""Caller identity check for the voice platform endpoint.

Every event names the skill it was sent for.  Events for any other skill
are refused outright, before the dialog sees them.

Behavior matrix:
  APP_ID set + matching application id → allow
  APP_ID set + other/missing id        → 403 Forbidden
  APP_ID empty + DEBUG=true            → allow (local dev convenience)
  APP_ID empty + DEBUG=false           → 403 Forbidden (locked in production)
"""

from __future__ import annotations

import hmac
import logging

from fastapi import HTTPException, status

from roomfinder.config import settings
from roomfinder.models.envelope import InvocationEvent

log = logging.getLogger("roomfinder.auth")


class ApplicationMismatchError(Exception):
    """The event was addressed to a different application."""


def check_application_id(event: InvocationEvent, expected: str) -> None:
    """Raise ``ApplicationMismatchError`` unless the event is for ``expected``."""
    received = event.session.application.application_id
    if not hmac.compare_digest(received.encode(), expected.encode()):
        raise ApplicationMismatchError(
            f"event for application {received or '<none>'!r} rejected"
        )


def require_application(event: InvocationEvent) -> None:
    """Endpoint guard: turn an identity mismatch into HTTP 403."""
    expected = settings.app_id

    if not expected:
        if settings.debug:
            return  # Local dev: accept any skill
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Application id not configured. Set APP_ID in .env.",
        )

    try:
        check_application_id(event, expected)
    except ApplicationMismatchError as exc:
        log.warning("Rejected invocation: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid application id.",
        )
