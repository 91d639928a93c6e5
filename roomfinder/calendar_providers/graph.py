"""Microsoft Graph calendar provider implementation.

Talks to Graph with the caller's own OAuth bearer token (the voice platform
passes it through from account linking), so every call acts as the user.
The calendar directory comes from the beta endpoint because only it exposes
each calendar's ``owner``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from .base import (
    CalendarEvent,
    CalendarInfo,
    CalendarProvider,
    CalendarProviderError,
    FailureCause,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://graph.microsoft.com"


class GraphCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Microsoft Graph."""

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise CalendarProviderError(
                FailureCause("auth", "no access token; link your account first")
            )
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_graph_time(dt: datetime) -> str:
        """Graph wants a naive UTC timestamp plus a separate time zone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).replace(tzinfo=None).isoformat(
            timespec="seconds"
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        """Send one request and return its JSON body, mapping every failure."""
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise CalendarProviderError(FailureCause("timeout", str(exc) or "timed out"))
        except httpx.TransportError as exc:
            raise CalendarProviderError(FailureCause("network", str(exc)))

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = None

        # Status decides the kind; gateways answer errors with HTML bodies
        error = body.get("error") if isinstance(body, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        if resp.status_code in (401, 403):
            raise CalendarProviderError(
                FailureCause("auth", message or resp.reason_phrase or f"status {resp.status_code}")
            )
        if resp.status_code >= 400:
            raise CalendarProviderError(
                FailureCause("http", message or resp.reason_phrase or f"status {resp.status_code}")
            )

        if body is None:
            raise CalendarProviderError(
                FailureCause("parse", f"non-JSON response (status {resp.status_code})")
            )
        if error:
            raise CalendarProviderError(FailureCause("http", message or "error in response body"))
        if not isinstance(body, dict):
            raise CalendarProviderError(FailureCause("parse", "unexpected response shape"))
        return body

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def list_calendars(self) -> list[CalendarInfo]:
        """Walk every page of the caller's calendar list."""
        calendars: list[CalendarInfo] = []
        url: str | None = "/beta/me/calendars"

        while url:
            body = await self._request("GET", url)
            for raw in body.get("value", []):
                owner = raw.get("owner") or {}
                calendars.append(
                    CalendarInfo(
                        id=str(raw.get("id", "")),
                        name=raw.get("name", ""),
                        owner_name=owner.get("name", ""),
                        owner_address=owner.get("address", ""),
                    )
                )
            url = body.get("@odata.nextLink")

        logger.debug("Graph directory returned %d calendars", len(calendars))
        return calendars

    async def get_events(
        self, calendar_id: str, start: datetime, end: datetime,
    ) -> list[dict]:
        """Query the calendar view; one event is enough to call it busy."""
        body = await self._request(
            "GET",
            f"/v1.0/me/calendars/{calendar_id}/calendarView",
            params={
                "startDateTime": self._to_graph_time(start),
                "endDateTime": self._to_graph_time(end),
                "$select": "subject,start,end",
                "$top": "1",
            },
        )
        events = body.get("value")
        if not isinstance(events, list):
            raise CalendarProviderError(FailureCause("parse", "calendarView without value"))
        return events

    async def create_event(self, event: CalendarEvent) -> dict:
        """Post the meeting to the caller's calendar, inviting the attendees."""
        payload: dict[str, Any] = {
            "subject": event.summary,
            "body": {"contentType": "Text", "content": event.description},
            "start": {"dateTime": self._to_graph_time(event.start), "timeZone": "UTC"},
            "end": {"dateTime": self._to_graph_time(event.end), "timeZone": "UTC"},
            "attendees": [
                {
                    "type": "required",
                    "emailAddress": {"address": address, "name": name},
                }
                for name, address in event.attendees
            ],
        }
        if event.transaction_id:
            payload["transactionId"] = event.transaction_id

        result = await self._request("POST", "/v1.0/me/events", json=payload)
        logger.info("Created Graph event %s", result.get("id", "?"))

        return {
            "event_id": result.get("id", ""),
            "html_link": result.get("webLink", ""),
        }

    async def aclose(self) -> None:
        await self._client.aclose()
