# tubeloader/models/job.py
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from tubeloader.errors import InvalidStateTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


# Allowed forward moves. Terminal states absorb.
_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.RUNNING},
    JobStatus.RUNNING: {JobStatus.DONE, JobStatus.FAILED},
    JobStatus.DONE: set(),
    JobStatus.FAILED: set(),
}


@dataclass(frozen=True)
class CredentialBundle:
    """
    OAuth tokens captured from the user's session at submission time.
    Passed through unchanged to the publisher; never refreshed here.
    """

    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[str] = None
    scope: Optional[str] = None
    token_uri: Optional[str] = None

    @classmethod
    def from_tokens(cls, tokens: dict) -> "CredentialBundle":
        return cls(
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            expiry=tokens.get("expiry"),
            scope=tokens.get("scope"),
            token_uri=tokens.get("token_uri"),
        )


@dataclass(frozen=True)
class RedirectContext:
    redirect_uri: str


@dataclass(frozen=True)
class NewJob:
    """Submitted metadata for one batch item."""

    source_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    privacy_status: Optional[str] = None


@dataclass
class Job:
    id: str
    sequence: int
    source_url: str
    credential: CredentialBundle
    redirect_context: RedirectContext
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    privacy_status: Optional[str] = None

    status: JobStatus = JobStatus.QUEUED
    message: str = "Queued for processing"

    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    external_id: Optional[str] = None
    external_url: Optional[str] = None

    def transition(self, target: JobStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(self.id, self.status.value, target.value)
        self.status = target

    def snapshot(self) -> "Job":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "message": self.message,
            "sourceUrl": self.source_url,
            "title": self.title,
            "videoId": self.external_id,
            "videoUrl": self.external_url,
            "createdAt": _iso(self.created_at),
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
