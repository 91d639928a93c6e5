"""Tests for the application id check on the webhook."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi import HTTPException

from fakes import APP_ID, make_event
from roomfinder.auth import (
    ApplicationMismatchError,
    check_application_id,
    require_application,
)


# ── Fixture: mock settings for auth tests ──────────────────────────

class FakeSettings:
    def __init__(self, app_id="", debug=False):
        self.app_id = app_id
        self.debug = debug


# ── Tests: identity check ──────────────────────────────────────────

class TestCheckApplicationId:
    def test_accepts_matching_id(self):
        check_application_id(make_event("BookIntent"), APP_ID)

    def test_rejects_other_id(self):
        event = make_event("BookIntent", app_id="amzn1.ask.skill.other")
        with pytest.raises(ApplicationMismatchError):
            check_application_id(event, APP_ID)

    def test_rejects_missing_id(self):
        event = make_event("BookIntent", app_id="")
        with pytest.raises(ApplicationMismatchError) as exc_info:
            check_application_id(event, APP_ID)
        assert "<none>" in str(exc_info.value)


# ── Tests: endpoint guard ──────────────────────────────────────────

class TestRequireApplication:
    """Test the require_application guard directly."""

    def test_allows_matching_id(self, monkeypatch):
        monkeypatch.setattr("roomfinder.auth.settings", FakeSettings(app_id=APP_ID))
        # Should not raise
        require_application(make_event("BookIntent"))

    def test_rejects_wrong_id(self, monkeypatch):
        monkeypatch.setattr("roomfinder.auth.settings", FakeSettings(app_id=APP_ID))
        with pytest.raises(HTTPException) as exc_info:
            require_application(make_event("BookIntent", app_id="amzn1.ask.skill.other"))
        assert exc_info.value.status_code == 403

    def test_wrong_id_rejected_even_in_debug(self, monkeypatch):
        monkeypatch.setattr("roomfinder.auth.settings", FakeSettings(app_id=APP_ID, debug=True))
        with pytest.raises(HTTPException):
            require_application(make_event("BookIntent", app_id="amzn1.ask.skill.other"))

    def test_allows_no_id_debug_mode(self, monkeypatch):
        monkeypatch.setattr("roomfinder.auth.settings", FakeSettings(app_id="", debug=True))
        # No id + debug = accept any skill
        require_application(make_event("BookIntent", app_id="anything"))

    def test_rejects_no_id_production(self, monkeypatch):
        monkeypatch.setattr("roomfinder.auth.settings", FakeSettings(app_id="", debug=False))
        with pytest.raises(HTTPException) as exc_info:
            require_application(make_event("BookIntent"))
        assert exc_info.value.status_code == 403
