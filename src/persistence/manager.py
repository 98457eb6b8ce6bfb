"""Model acquisition: make sure a model's files exist locally before loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from core.cancellation import CancellationToken, raise_if_cancelled
from core.errors import DownloadIncompleteError, ModelNotFoundError
from persistence.cache import DEFAULT_REVISION, ModelCache
from persistence.contracts import FileFetcher
from persistence.fetcher import HubFetcher, ProgressSink
from persistence.hashing import is_pointer_file
from persistence.models import CachedArtifactPaths
from schemas.models import ModelDescriptor

logger = logging.getLogger(__name__)


class ModelAcquirer:
    """Compose the cache layout and the fetcher into a single ``ensure`` call.

    A file counts as present only if it exists and is not a git-lfs pointer.
    No cross-process locking is done; concurrent processes may download the
    same file twice, but atomic renames keep the cache consistent.
    """

    def __init__(self, cache: ModelCache, fetcher: Optional[FileFetcher] = None) -> None:
        self._cache = cache
        self._fetcher = fetcher

    @property
    def cache(self) -> ModelCache:
        return self._cache

    def cached(
        self, descriptor: ModelDescriptor, revision: str = DEFAULT_REVISION
    ) -> CachedArtifactPaths | None:
        paths = self._paths_for(descriptor, revision)
        if _usable(paths.model_path) and _usable(paths.tokenizer_path):
            return paths
        return None

    def ensure(
        self,
        descriptor: ModelDescriptor,
        *,
        allow_download: bool = True,
        revision: str = DEFAULT_REVISION,
        progress: Optional[ProgressSink] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> CachedArtifactPaths:
        paths = self._paths_for(descriptor, revision)
        model_ok = _usable(paths.model_path)
        tokenizer_ok = _usable(paths.tokenizer_path)

        if model_ok and tokenizer_ok:
            logger.debug("Cache hit for %s@%s", descriptor.id, revision)
            return paths

        if descriptor.is_local:
            missing = paths.model_path if not model_ok else paths.tokenizer_path
            raise ModelNotFoundError(
                f"Local model file '{missing}' does not exist.", descriptor.id
            )

        if not allow_download:
            raise ModelNotFoundError(
                f"Model '{descriptor.id}' not found in cache and auto-download is disabled.",
                descriptor.id,
            )

        logger.info(
            "Cache miss for %s@%s (model=%s, tokenizer=%s)",
            descriptor.id,
            revision,
            "ok" if model_ok else "missing",
            "ok" if tokenizer_ok else "missing",
        )
        self._cache.ensure_directory(descriptor.id, revision)
        fetcher = self._fetcher or self._default_fetcher()

        pending = []
        if not model_ok:
            pending.append((descriptor.model_file, paths.model_path))
        if not tokenizer_ok:
            pending.append((descriptor.tokenizer_file, paths.tokenizer_path))
        for file_name, destination in pending:
            raise_if_cancelled(cancellation)
            fetcher.fetch(
                descriptor.id,
                file_name,
                destination,
                revision=revision,
                progress=progress,
                cancellation=cancellation,
            )

        for file_name, path in (
            (descriptor.model_file, paths.model_path),
            (descriptor.tokenizer_file, paths.tokenizer_path),
        ):
            if not path.is_file():
                raise DownloadIncompleteError(
                    f"'{file_name}' was not downloaded successfully for '{descriptor.id}'.",
                    descriptor.id,
                    file_name,
                )
        return paths

    def _paths_for(self, descriptor: ModelDescriptor, revision: str) -> CachedArtifactPaths:
        if descriptor.local_directory is not None:
            directory = Path(descriptor.local_directory)
            return CachedArtifactPaths(
                model_path=directory / descriptor.model_file,
                tokenizer_path=directory / descriptor.tokenizer_file,
            )
        return self._cache.cached_paths(descriptor, revision)

    def _default_fetcher(self) -> FileFetcher:
        if self._fetcher is None:
            self._fetcher = HubFetcher()
        return self._fetcher


def _usable(path: Path) -> bool:
    return path.is_file() and not is_pointer_file(path)


__all__ = ["ModelAcquirer"]
