"""Lightweight persistence records."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CachedArtifactPaths:
    model_path: Path
    tokenizer_path: Path


@dataclass(frozen=True)
class CachedModel:
    model_id: str
    revision: str
    path: Path


@dataclass(frozen=True)
class DownloadProgress:
    file_name: str
    bytes_downloaded: int
    total_bytes: int | None

    @property
    def fraction(self) -> float | None:
        if not self.total_bytes:
            return None
        return min(1.0, self.bytes_downloaded / self.total_bytes)

    @property
    def percent_complete(self) -> float:
        fraction = self.fraction
        return 0.0 if fraction is None else fraction * 100.0


__all__ = ["CachedArtifactPaths", "CachedModel", "DownloadProgress"]
