"""
Index document retrieval for chartsync.

Fetches a repository's ``index.yaml`` with a single bounded GET over a
session from SecureClientBuilder. There is no retry here: failures go
back to the scheduler, which owns the retry policy.
"""

import logging
import threading
from typing import Optional
from urllib.parse import urlsplit

import requests

from ..errors import FetchError, SyncCancelled

logger = logging.getLogger(__name__)

INDEX_PATH = "/index.yaml"
DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 64 * 1024


def normalize_index_url(url: str) -> str:
    """
    Turn a repository base URL into its index document URL.

    Example:
        >>> normalize_index_url("https://charts.example.com/stable/")
        'https://charts.example.com/stable/index.yaml'

    Raises:
        FetchError: if the URL has no scheme or host
    """
    url = url.strip()
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise FetchError(url, "Unable to parse repository URL")

    if url.endswith(INDEX_PATH):
        return url
    return url.rstrip('/') + INDEX_PATH


class IndexClient:
    """
    Retrieves raw index documents.

    Example:
        client = IndexClient(session, timeout=30)
        data = client.fetch("https://charts.example.com/index.yaml")
    """

    def __init__(self, session: requests.Session, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize IndexClient.

        Args:
            session: Session carrying the repository's TLS configuration
            timeout: Connect and read timeout in seconds
        """
        self.session = session
        self.timeout = timeout

    def fetch(self, index_url: str, cancel: Optional[threading.Event] = None) -> bytes:
        """
        Download the index document.

        Args:
            index_url: Normalized index URL (see normalize_index_url)
            cancel: Set by the caller to abort the download

        Returns:
            Raw response body

        Raises:
            FetchError: on transport failure or a non-2xx status
            SyncCancelled: if ``cancel`` is set before or during the download
        """
        _check_cancelled(cancel, index_url)
        logger.debug(f"Fetching {index_url}")

        try:
            response = self.session.get(index_url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise FetchError(index_url, f"Request failed: {e}") from e

        try:
            status = response.status_code
            if not 200 <= status < 300:
                raise FetchError(index_url, f"Unexpected response {response.reason}", status)

            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                _check_cancelled(cancel, index_url)
                chunks.append(chunk)
        except requests.RequestException as e:
            raise FetchError(index_url, f"Failed reading response: {e}") from e
        finally:
            response.close()

        data = b''.join(chunks)
        logger.debug(f"Fetched {len(data)} bytes from {index_url}")
        return data


def _check_cancelled(cancel: Optional[threading.Event], url: str) -> None:
    if cancel is not None and cancel.is_set():
        raise SyncCancelled(f"Fetch of {url} cancelled")
