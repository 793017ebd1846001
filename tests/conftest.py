"""Pytest configuration and fixtures."""

import threading
import time

import pytest

from tubeloader.errors import DownloadError
from tubeloader.models.job import CredentialBundle, RedirectContext
from tubeloader.repos.job_store import JobStore
from tubeloader.services.source_fetcher import FetchResult
from tubeloader.services.upload_service import UploadService
from tubeloader.services.youtube_publisher import PublishResult


def run_inline(runner, job_id):
    """Spawn replacement that runs the worker on the calling thread."""
    runner(job_id)


def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeFetcher:
    """Writes a few bytes to the staging path; optionally fails or blocks per URL."""

    def __init__(self, filename="clip.mp4"):
        self.filename = filename
        self.calls = []
        self.failures = {}
        self.gates = {}
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def fail(self, url, reason="Failed to fetch source: connection refused"):
        self.failures[url] = reason

    def gate(self, url):
        event = threading.Event()
        self.gates[url] = event
        return event

    def fetch(self, url, destination):
        with self._lock:
            self.calls.append(url)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            with open(destination, "wb") as f:
                f.write(b"video-bytes")

            gate = self.gates.get(url)
            if gate is not None:
                gate.wait(timeout=5)

            if url in self.failures:
                raise DownloadError(url, self.failures[url])

            return FetchResult(filename=self.filename, resolved_url=url, bytes_written=11)
        finally:
            with self._lock:
                self.active -= 1


class FakePublisher:
    def __init__(self, result=None):
        self.result = result or PublishResult.success("vid123")
        self.requests = []
        self.seen_media = []

    def publish(self, request):
        self.requests.append(request)
        with open(request.media_path, "rb") as f:
            self.seen_media.append(f.read())
        return self.result


@pytest.fixture
def credential():
    return CredentialBundle(
        access_token="ya29.token",
        refresh_token="1//refresh",
        expiry="2030-01-01T00:00:00",
        scope="https://www.googleapis.com/auth/youtube.upload",
    )


@pytest.fixture
def redirect_context():
    return RedirectContext(redirect_uri="http://testserver/auth/google/callback")


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def staging_dir(tmp_path):
    return str(tmp_path / "staging")


@pytest.fixture
def make_service(store, fetcher, publisher, staging_dir):
    def _make(**overrides):
        options = dict(
            store=store,
            fetcher=fetcher,
            publisher=publisher,
            max_concurrent=2,
            max_bulk_items=5,
            status_limit=100,
            staging_dir=staging_dir,
            spawn=run_inline,
        )
        options.update(overrides)
        return UploadService(**options)

    return _make
