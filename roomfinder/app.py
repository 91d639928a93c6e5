"""FastAPI application — the voice platform's webhook.

Endpoints:

  POST /alexa     One platform event in, one response out
  GET  /health    Health check

The flow for each user turn:
  1. The platform POSTs the event, carrying the previous turn's attributes
  2. The application id is checked; events for other skills get 403
  3. The DialogController runs the turn against a calendar provider built
     for the caller's access token
  4. The response, with the next turn's attributes, goes back as JSON
"""

from __future__ import annotations

# Load .env into os.environ before settings are read elsewhere
from dotenv import load_dotenv
load_dotenv()

import logging
import time

# Configure root logger early so all roomfinder loggers have a handler
# and are visible when run via `uvicorn roomfinder.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from roomfinder.auth import require_application
from roomfinder.calendar_providers.base import CalendarProvider
from roomfinder.config import settings
from roomfinder.dialog import DialogController
from roomfinder.models.envelope import InvocationEvent

log = logging.getLogger("roomfinder.app")

_START_TIME = time.time()


def create_app(controller: DialogController | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    for warning in settings.validate_startup():
        log.warning(warning)

    app = FastAPI(
        title="Room Finder",
        description="Voice-driven meeting room booking",
        version="0.1.0",
    )
    dialog = controller or DialogController(provider_factory=build_provider)

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check — confirms the event loop is responsive."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Platform webhook ───────────────────────────────────────

    @app.post("/alexa")
    async def invoke(event: InvocationEvent) -> JSONResponse:
        """Handle one user turn."""
        require_application(event)
        response = await dialog.handle(event)
        return JSONResponse(response.to_wire())

    return app


# ── Helper functions ──────────────────────────────────────────────

def build_provider(access_token: str | None) -> CalendarProvider:
    """Create the configured calendar provider for one invocation.

    Graph acts as the caller through their linked-account token; Google
    uses the service account and ignores the token.
    """
    if settings.calendar_backend == "google":
        from roomfinder.calendar_providers.google import GoogleCalendarProvider
        return GoogleCalendarProvider(
            service_account_path=settings.google_service_account_json,
            calendar_id=settings.google_calendar_id,
        )

    from roomfinder.calendar_providers.graph import GraphCalendarProvider
    return GraphCalendarProvider(
        access_token=access_token or "",
        base_url=settings.graph_base_url,
    )


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "roomfinder.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
