# tubeloader/services/youtube_publisher.py
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload
from httplib2 import HttpLib2Error

from tubeloader import config
from tubeloader.models.job import CredentialBundle, RedirectContext

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
DEFAULT_PRIVACY_STATUS = "private"


def watch_url(video_id: str) -> str:
    return WATCH_URL.format(video_id=video_id)


@dataclass
class PublishRequest:
    title: str
    description: str
    tags: List[str]
    privacy_status: str
    media_path: str
    credential: CredentialBundle
    redirect_context: RedirectContext


@dataclass
class PublishResult:
    external_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.external_id is not None

    @classmethod
    def success(cls, external_id: str) -> "PublishResult":
        return cls(external_id=external_id)

    @classmethod
    def failure(cls, message: Optional[str], code: Optional[str] = None) -> "PublishResult":
        return cls(error_code=code, error_message=message)


# -------------------------------------------------
# Error shape resolution
# -------------------------------------------------
def error_from_http_error(error: HttpError) -> PublishResult:
    """
    Google API errors nest the useful text under error.message or
    error.errors[].message, and either may be missing.
    """
    status = getattr(error.resp, "status", None)

    payload = {}
    try:
        content = error.content.decode("utf-8") if isinstance(error.content, bytes) else error.content
        payload = json.loads(content or "{}").get("error") or {}
    except (ValueError, AttributeError):
        payload = {}

    if not isinstance(payload, dict):
        payload = {}

    details = [d for d in (payload.get("errors") or []) if isinstance(d, dict)]

    message = payload.get("message")
    if not message:
        message = next((d.get("message") for d in details if d.get("message")), None)
    if not message:
        message = str(error) or None

    code = None
    if details:
        code = details[0].get("reason")
    if not code:
        code = payload.get("status")
    if not code and status is not None:
        code = str(status)

    return PublishResult.failure(message, code)


def build_credentials(bundle: CredentialBundle) -> Credentials:
    expiry = None
    if bundle.expiry:
        try:
            # google-auth compares against naive UTC datetimes
            expiry = datetime.fromisoformat(bundle.expiry.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            expiry = None

    return Credentials(
        token=bundle.access_token,
        refresh_token=bundle.refresh_token,
        token_uri=bundle.token_uri or config.GOOGLE_TOKEN_URI,
        client_id=config.GOOGLE_CLIENT_ID,
        client_secret=config.GOOGLE_CLIENT_SECRET,
        scopes=bundle.scope.split() if bundle.scope else None,
        expiry=expiry,
    )


class YouTubePublisher:
    """Uploads a staged file with the YouTube Data API v3 (videos.insert)."""

    def __init__(self, chunk_size: int = -1):
        self.chunk_size = chunk_size

    def publish(self, request: PublishRequest) -> PublishResult:
        try:
            youtube = build(
                "youtube",
                "v3",
                credentials=build_credentials(request.credential),
                cache_discovery=False,
            )

            media = MediaFileUpload(
                request.media_path,
                mimetype="application/octet-stream",
                chunksize=self.chunk_size,
                resumable=True,
            )

            response = youtube.videos().insert(
                part="snippet,status",
                body={
                    "snippet": {
                        "title": request.title,
                        "description": request.description,
                        "tags": request.tags,
                    },
                    "status": {
                        "privacyStatus": request.privacy_status or DEFAULT_PRIVACY_STATUS,
                    },
                },
                media_body=media,
            ).execute()

        except HttpError as e:
            result = error_from_http_error(e)
            logger.warning("YouTube rejected upload: %s (%s)", result.error_message, result.error_code)
            return result
        except GoogleAuthError as e:
            logger.warning("YouTube credentials rejected: %s", e)
            return PublishResult.failure(str(e) or None, "auth_error")
        except (HttpLib2Error, OSError) as e:
            logger.warning("YouTube upload transport error: %s", e)
            return PublishResult.failure(str(e) or None, "transport_error")

        video_id = (response or {}).get("id")
        if not video_id:
            return PublishResult.failure("YouTube response did not include a video id.", "invalid_response")

        return PublishResult.success(video_id)
