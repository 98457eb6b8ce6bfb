"""Resilient model file downloads from a hub-style resolve endpoint."""

from __future__ import annotations

import logging
import os
import time
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
from typing import Callable, Optional

import httpx

from core.cancellation import CancellationToken, raise_if_cancelled
from core.config import DEFAULT_HUB_URL
from core.errors import DownloadFailedError, OperationCancelledError, PointerFileError
from persistence.fs_store import atomic_write
from persistence.hashing import is_pointer_file
from persistence.models import DownloadProgress

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 2.0
DEFAULT_BUFFER_SIZE = 81920
DEFAULT_TIMEOUT = 1800.0

ProgressSink = Callable[[DownloadProgress], None]


class HubFetcher:
    """Download single repository files with retry and exponential backoff.

    Each attempt restarts from scratch into a fresh temp file; the final path
    is only replaced once a complete, non-pointer file has been written.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_HUB_URL,
        client: Optional[httpx.Client] = None,
        token: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        self._base_url = base_url.rstrip("/")
        self._max_attempts = max_attempts
        self._base_delay = max(0.0, base_delay)
        self._buffer_size = buffer_size
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or _default_client(timeout, token)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def resolve_url(self, model_id: str, file_name: str, revision: str = "main") -> str:
        return f"{self._base_url}/{model_id}/resolve/{revision}/{file_name}"

    def fetch(
        self,
        model_id: str,
        file_name: str,
        destination: str | Path,
        *,
        revision: str = "main",
        progress: Optional[ProgressSink] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Path:
        url = self.resolve_url(model_id, file_name, revision)
        target = Path(destination)
        last_error: Exception | None = None

        def _reject_pointer(temp_path: Path) -> None:
            if is_pointer_file(temp_path):
                raise PointerFileError(
                    f"Downloaded '{file_name}' is a git-lfs pointer; the repository "
                    f"'{model_id}' did not serve the real file.",
                    model_id,
                    file_name,
                )

        for attempt in range(1, self._max_attempts + 1):
            raise_if_cancelled(cancellation)
            logger.info(
                "Downloading %s (attempt %d/%d)", url, attempt, self._max_attempts
            )
            try:
                with atomic_write(target, verify=_reject_pointer) as temp_path:
                    self._stream_to(url, temp_path, file_name, progress, cancellation)
            except (OperationCancelledError, PointerFileError):
                raise
            except (httpx.HTTPError, OSError) as exc:
                last_error = exc
                logger.warning(
                    "Download of %s failed on attempt %d/%d: %s",
                    url,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                if attempt < self._max_attempts:
                    self._backoff(attempt, cancellation)
                continue
            logger.info("Downloaded %s to %s", url, target)
            return target

        raise DownloadFailedError(
            f"Failed to download '{file_name}' from '{model_id}' after "
            f"{self._max_attempts} attempts.",
            model_id,
            file_name,
        ) from last_error

    def file_size(self, model_id: str, file_name: str, revision: str = "main") -> int | None:
        """Remote size in bytes, or None when it cannot be determined."""
        url = self.resolve_url(model_id, file_name, revision)
        try:
            response = self._client.head(url)
            if not response.is_success:
                return None
            length = response.headers.get("Content-Length")
            return int(length) if length is not None else None
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Size probe for %s failed: %s", url, exc)
            return None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HubFetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _stream_to(
        self,
        url: str,
        temp_path: Path,
        file_name: str,
        progress: Optional[ProgressSink],
        cancellation: Optional[CancellationToken],
    ) -> None:
        with self._client.stream("GET", url) as response:
            response.raise_for_status()
            total = _content_length(response)
            downloaded = 0
            with temp_path.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size=self._buffer_size):
                    raise_if_cancelled(cancellation)
                    handle.write(chunk)
                    downloaded += len(chunk)
                    if progress is not None and total:
                        progress(DownloadProgress(file_name, downloaded, total))
        if progress is not None:
            progress(DownloadProgress(file_name, downloaded, total or downloaded))

    def _backoff(self, attempt: int, cancellation: Optional[CancellationToken]) -> None:
        delay = self._base_delay * (2 ** (attempt - 1))
        if delay <= 0:
            return
        if cancellation is not None:
            if cancellation.wait(delay):
                cancellation.raise_if_cancelled()
            return
        self._sleep(delay)


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _default_client(timeout: float, token: Optional[str]) -> httpx.Client:
    headers = {"User-Agent": f"localrerank/{_package_version()}"}
    token = token or os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_HUB_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        follow_redirects=True,
        max_redirects=10,
        timeout=httpx.Timeout(timeout, connect=30.0),
        headers=headers,
    )


def _package_version() -> str:
    try:
        return pkg_version("localrerank")
    except PackageNotFoundError:
        return "0.0.0-dev"


__all__ = ["HubFetcher", "ProgressSink"]
