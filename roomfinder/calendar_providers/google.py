"""Google Calendar provider implementation.

Uses a Google Cloud service account to interact with the Calendar API v3.
Room calendars are the Workspace resource calendars shared with the
service account; the meeting is created on ``calendar_id`` and the room's
resource address is invited.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from functools import partial
from typing import Any

import httplib2
from google.oauth2.service_account import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .base import (
    CalendarEvent,
    CalendarInfo,
    CalendarProvider,
    CalendarProviderError,
    FailureCause,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]

# Client-supplied event ids must be base32hex: lowercase a-v and digits
_EVENT_ID_INVALID = re.compile(r"[^a-v0-9]")


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(
        self, service_account_path: str, calendar_id: str = "primary",
    ) -> None:
        if not service_account_path:
            raise ValueError("Google service account JSON path must be provided.")
        self._calendar_id = calendar_id
        self._credentials = Credentials.from_service_account_file(
            service_account_path, scopes=SCOPES
        )
        self._service = build(
            "calendar", "v3", credentials=self._credentials
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _authorized_http(self) -> AuthorizedHttp:
        return AuthorizedHttp(self._credentials, http=httplib2.Http())

    async def _run_in_executor(self, request) -> Any:
        """Execute a Google API request in a worker thread, mapping its failures.

        Every request gets its own authorized transport: httplib2 objects
        are not thread-safe and probes run concurrently.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, partial(request.execute, http=self._authorized_http())
            )
        except HttpError as exc:
            status = exc.resp.status if exc.resp is not None else 0
            kind = "auth" if status in (401, 403) else "http"
            raise CalendarProviderError(FailureCause(kind, f"status {status}: {exc.reason}"))
        except OSError as exc:
            raise CalendarProviderError(FailureCause("network", str(exc)))

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def list_calendars(self) -> list[CalendarInfo]:
        calendars: list[CalendarInfo] = []
        page_token = None

        while True:
            response = await self._run_in_executor(
                self._service.calendarList().list(pageToken=page_token)
            )
            for item in response.get("items", []):
                # For resource calendars the id is the room's mailbox
                calendars.append(
                    CalendarInfo(
                        id=item["id"],
                        name=item.get("summaryOverride") or item.get("summary", ""),
                        owner_name=item.get("summary", ""),
                        owner_address=item["id"],
                    )
                )
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return calendars

    async def get_events(
        self, calendar_id: str, start: datetime, end: datetime,
    ) -> list[dict]:
        response = await self._run_in_executor(
            self._service.events()
            .list(
                calendarId=calendar_id,
                timeMin=self._to_rfc3339(start),
                timeMax=self._to_rfc3339(end),
                singleEvents=True,
                maxResults=1,
            )
        )
        return response.get("items", [])

    async def create_event(self, event: CalendarEvent) -> dict:
        """Insert an event into the Google Calendar.

        Sends invitations to every attendee.  The transaction id becomes the
        event id, so a replayed insert fails with 409 instead of duplicating.
        """
        body: dict[str, Any] = {
            "summary": event.summary,
            "start": {"dateTime": self._to_rfc3339(event.start)},
            "end": {"dateTime": self._to_rfc3339(event.end)},
            "attendees": [
                {"email": address, "displayName": name}
                for name, address in event.attendees
            ],
        }
        if event.description:
            body["description"] = event.description
        if event.transaction_id:
            body["id"] = _EVENT_ID_INVALID.sub("", event.transaction_id.lower())

        result = await self._run_in_executor(
            self._service.events()
            .insert(
                calendarId=self._calendar_id,
                body=body,
                sendUpdates="all",
            )
        )

        logger.info("Created event %s on calendar %s", result["id"], self._calendar_id)

        return {
            "event_id": result["id"],
            "html_link": result.get("htmlLink", ""),
        }
