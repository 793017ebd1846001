# tubeloader/services/google_auth.py
import logging
import os
from typing import Optional, Tuple

from google_auth_oauthlib.flow import Flow

from tubeloader import config
from tubeloader.models.job import CredentialBundle

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/auth/google/callback"

SESSION_TOKENS = "tokens"
SESSION_STATE = "oauthState"
SESSION_VERIFIER = "oauthCodeVerifier"

# Google may grant a superset of the requested scopes
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")


def resolve_redirect_uri(request_base_url: str) -> str:
    base = config.BASE_URL or request_base_url.rstrip("/")
    return f"{base}{CALLBACK_PATH}"


def _client_config() -> dict:
    return {
        "web": {
            "client_id": config.GOOGLE_CLIENT_ID,
            "client_secret": config.GOOGLE_CLIENT_SECRET,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": config.GOOGLE_TOKEN_URI,
        }
    }


def build_flow(
    redirect_uri: str,
    state: Optional[str] = None,
    code_verifier: Optional[str] = None,
) -> Flow:
    return Flow.from_client_config(
        _client_config(),
        scopes=config.OAUTH_SCOPES,
        redirect_uri=redirect_uri,
        state=state,
        code_verifier=code_verifier,
    )


def authorization_url(flow: Flow) -> Tuple[str, str]:
    """Returns (url, state). Offline + consent so Google hands back a refresh token."""
    return flow.authorization_url(
        access_type="offline",
        prompt="consent",
    )


def exchange_code(flow: Flow, code: str, previous_tokens: Optional[dict] = None) -> dict:
    """
    Trade the authorization code for tokens.

    Google omits refresh_token when the user already consented once;
    keep the one we had.
    """
    flow.fetch_token(code=code)
    creds = flow.credentials

    tokens = {
        "access_token": creds.token,
        "refresh_token": creds.refresh_token,
        "expiry": creds.expiry.isoformat() if creds.expiry else None,
        "scope": " ".join(creds.scopes or []) or None,
        "token_uri": creds.token_uri,
    }

    if not tokens["refresh_token"] and previous_tokens:
        tokens["refresh_token"] = previous_tokens.get("refresh_token")

    return tokens


def credential_from_session(session) -> Optional[CredentialBundle]:
    tokens = session.get(SESSION_TOKENS)
    if not tokens or not tokens.get("access_token"):
        return None
    return CredentialBundle.from_tokens(tokens)


def warn_if_unconfigured() -> None:
    if not config.GOOGLE_CLIENT_ID or not config.GOOGLE_CLIENT_SECRET:
        logger.warning("Missing GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET in environment variables.")
