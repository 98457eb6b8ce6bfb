"""Persistence protocol contracts."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Protocol

from core.cancellation import CancellationToken
from persistence.models import CachedArtifactPaths, DownloadProgress
from schemas.models import ModelDescriptor


class FileFetcher(Protocol):
    def fetch(
        self,
        model_id: str,
        file_name: str,
        destination: str | Path,
        *,
        revision: str = "main",
        progress: Optional[Callable[[DownloadProgress], None]] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Path: ...


class ArtifactAcquirer(Protocol):
    def ensure(
        self,
        descriptor: ModelDescriptor,
        *,
        allow_download: bool = True,
        revision: str = "main",
        progress: Optional[Callable[[DownloadProgress], None]] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> CachedArtifactPaths: ...


__all__ = ["ArtifactAcquirer", "FileFetcher"]
