"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("roomfinder.config")

_BACKENDS = {"graph", "google"}


class Settings(BaseSettings):
    # Voice platform
    app_id: str = ""
    default_locale: str = "en-GB"

    # Booking policy
    bookable_rooms: list[str] = []
    max_duration_minutes: int = 120
    meeting_subject: str = "Meeting room booking"
    meeting_body: str = "This meeting was booked by Room Finder."

    # Calendar backend
    calendar_backend: str = "graph"  # "graph" or "google"
    graph_base_url: str = "https://graph.microsoft.com"
    google_service_account_json: str = ""
    google_calendar_id: str = "primary"

    # Remote call timeouts (the platform waits about 8s per turn)
    availability_timeout_seconds: float = 3.0
    booking_timeout_seconds: float = 4.0

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.max_duration_minutes <= 0:
            raise ValueError(
                f"MAX_DURATION_MINUTES must be positive, got {self.max_duration_minutes}."
            )

        if self.calendar_backend not in _BACKENDS:
            raise ValueError(
                f"CALENDAR_BACKEND must be one of {sorted(_BACKENDS)}, "
                f"got {self.calendar_backend!r}."
            )

        if self.calendar_backend == "google" and not self.google_service_account_json:
            raise ValueError(
                "CALENDAR_BACKEND=google requires GOOGLE_SERVICE_ACCOUNT_JSON."
            )

        from roomfinder.resources import LANGUAGE_STRINGS

        if self.default_locale not in LANGUAGE_STRINGS:
            raise ValueError(
                f"DEFAULT_LOCALE must be one of {sorted(LANGUAGE_STRINGS)}, "
                f"got {self.default_locale!r}."
            )

        # App id: warn if unset
        if not self.app_id:
            if self.debug:
                warnings.append(
                    "APP_ID not set. Events for any skill are accepted (DEBUG=true)."
                )
            else:
                warnings.append(
                    "APP_ID not set. Every event is rejected in production. "
                    "Set APP_ID in .env."
                )

        if not self.bookable_rooms:
            warnings.append(
                "BOOKABLE_ROOMS is empty. Every availability search will fail."
            )

        # Directory lookup and probes each get the full timeout, in sequence
        if self.availability_timeout_seconds * 2 >= 8 or self.booking_timeout_seconds >= 8:
            warnings.append(
                "Remote call timeouts can exceed the platform's 8 second "
                "response window."
            )

        return warnings


settings = Settings()
