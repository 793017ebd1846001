"""Tests for the Google sign-in helpers."""

from datetime import datetime
from unittest.mock import MagicMock

from tubeloader import config
from tubeloader.services.google_auth import (
    credential_from_session,
    exchange_code,
    resolve_redirect_uri,
)


def _flow(refresh_token=None):
    flow = MagicMock()
    flow.credentials.token = "ya29.new"
    flow.credentials.refresh_token = refresh_token
    flow.credentials.expiry = datetime(2031, 5, 1, 12, 0)
    flow.credentials.scopes = ["https://www.googleapis.com/auth/youtube.upload"]
    flow.credentials.token_uri = "https://oauth2.googleapis.com/token"
    return flow


def test_exchange_code_returns_token_dict():
    flow = _flow(refresh_token="1//fresh")

    tokens = exchange_code(flow, "auth-code")

    flow.fetch_token.assert_called_once_with(code="auth-code")
    assert tokens == {
        "access_token": "ya29.new",
        "refresh_token": "1//fresh",
        "expiry": "2031-05-01T12:00:00",
        "scope": "https://www.googleapis.com/auth/youtube.upload",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


def test_exchange_code_keeps_previous_refresh_token():
    tokens = exchange_code(_flow(refresh_token=None), "auth-code", {"refresh_token": "1//old"})

    assert tokens["refresh_token"] == "1//old"


def test_credential_from_session():
    assert credential_from_session({}) is None
    assert credential_from_session({"tokens": {"refresh_token": "r"}}) is None

    bundle = credential_from_session({"tokens": {"access_token": "a", "scope": "s"}})
    assert bundle.access_token == "a"
    assert bundle.scope == "s"
    assert bundle.refresh_token is None


def test_redirect_uri_from_request(monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", None)

    assert resolve_redirect_uri("http://localhost:3000/") == "http://localhost:3000/auth/google/callback"


def test_redirect_uri_from_base_url(monkeypatch):
    monkeypatch.setattr(config, "BASE_URL", "https://tube.example.com")

    assert resolve_redirect_uri("http://internal:3000/") == "https://tube.example.com/auth/google/callback"
