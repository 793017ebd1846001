# tubeloader/services/source_fetcher.py
import logging
import os
import posixpath
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from tubeloader.errors import DownloadError

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
}

CHUNK_SIZE = 1024 * 1024

# -------------------------------------------------
# Share-link rewriting
# -------------------------------------------------
DRIVE_HOST_MARKER = "drive.google.com"
DRIVE_DIRECT_DOWNLOAD = "https://drive.google.com/uc?export=download&id={file_id}"

_DRIVE_PATH_ID = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_DRIVE_QUERY_ID = re.compile(r"id=([a-zA-Z0-9_-]+)")

_DISPOSITION_FILENAME = re.compile(
    r"filename\*=UTF-8''([^;]+)|filename=\"?([^\";]+)\"?",
    re.IGNORECASE,
)


def convert_to_direct_download(url: str) -> str:
    """
    Google Drive share links point at a viewer page, not the file.
    Rewrite them to the direct-download endpoint; leave anything else alone.
    """
    if DRIVE_HOST_MARKER not in url:
        return url

    match = _DRIVE_PATH_ID.search(url) or _DRIVE_QUERY_ID.search(url)
    if not match:
        return url

    return DRIVE_DIRECT_DOWNLOAD.format(file_id=match.group(1))


def extract_filename(content_disposition: Optional[str], url: str) -> Optional[str]:
    """
    Suggested filename from a Content-Disposition header,
    falling back to the last path segment of the URL.
    """
    match = _DISPOSITION_FILENAME.search(content_disposition or "")
    if match:
        raw = match.group(1) or match.group(2)
        name = unquote(raw.strip())
        if name:
            return name

    name = posixpath.basename(unquote(urlparse(url).path))
    return name or None


@dataclass
class FetchResult:
    filename: str
    resolved_url: str
    bytes_written: int


class SourceFetcher:
    """Downloads an arbitrary HTTP(S) source into a local staging file."""

    def __init__(self, timeout: float = 0, session: Optional[requests.Session] = None):
        # requests treats None as "wait forever"
        self.timeout = timeout if timeout and timeout > 0 else None
        # per-fetch requests.get unless a session is injected
        self.session = session

    def fetch(self, url: str, destination: str) -> FetchResult:
        url = url.strip()
        resolved = convert_to_direct_download(url)
        if resolved != url:
            logger.info("Rewrote share link %s -> %s", url, resolved)

        written = 0
        try:
            http = self.session if self.session is not None else requests
            with http.get(
                resolved,
                timeout=self.timeout,
                allow_redirects=True,
                headers=HEADERS,
                stream=True,
            ) as resp:

                resp.raise_for_status()

                with open(destination, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)

                disposition = resp.headers.get("Content-Disposition", "")

        except requests.exceptions.RequestException as e:
            raise DownloadError(resolved, f"Failed to fetch source: {e}") from e
        except OSError as e:
            raise DownloadError(resolved, f"Failed to stage source: {e}") from e

        filename = extract_filename(disposition, resolved) or os.path.basename(destination)

        logger.info("Fetched %s (%d bytes) as %s", resolved, written, filename)
        return FetchResult(filename=filename, resolved_url=resolved, bytes_written=written)
