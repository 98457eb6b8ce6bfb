"""Deterministic on-disk layout for cached models.

Layout mirrors the Hugging Face hub cache so existing caches stay usable::

    <root>/models--<org>--<name>/snapshots/<revision>/<file>
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Mapping

from core.errors import InvalidArgumentError
from persistence.models import CachedArtifactPaths, CachedModel
from schemas.models import ModelDescriptor

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "LOCALRERANKER_CACHE_DIR"
DEFAULT_REVISION = "main"

_MODEL_PREFIX = "models--"
_SEPARATOR = "--"
_SNAPSHOTS = "snapshots"


def default_cache_root(
    *, platform: str | None = None, env: Mapping[str, str] | None = None
) -> Path:
    """Platform-conventional cache location."""
    platform = platform or sys.platform
    env = os.environ if env is None else env
    home = Path(env.get("HOME") or env.get("USERPROFILE") or Path.home())
    if platform.startswith("win"):
        local_app_data = env.get("LOCALAPPDATA")
        base = Path(local_app_data) if local_app_data else home / "AppData" / "Local"
        return base / "LocalReranker" / "models"
    if platform == "darwin":
        return home / "Library" / "Caches" / "LocalReranker" / "models"
    xdg_cache = env.get("XDG_CACHE_HOME")
    base = Path(xdg_cache) if xdg_cache else home / ".cache"
    return base / "localreranker" / "models"


def resolve_cache_root(
    explicit: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    platform: str | None = None,
) -> Path:
    """Explicit override, then ``LOCALRERANKER_CACHE_DIR``, then the platform default."""
    if explicit:
        return Path(explicit).expanduser()
    env = os.environ if env is None else env
    from_env = (env.get(CACHE_DIR_ENV) or "").strip()
    if from_env:
        return Path(from_env).expanduser()
    return default_cache_root(platform=platform, env=env)


def sanitize_model_id(model_id: str) -> str:
    return model_id.replace("/", _SEPARATOR).replace("\\", _SEPARATOR)


class ModelCache:
    def __init__(self, root: str | Path | None = None) -> None:
        self._root = resolve_cache_root(root)

    @property
    def root(self) -> Path:
        return self._root

    def directory_for(self, model_id: str, revision: str = DEFAULT_REVISION) -> Path:
        _require(model_id, "model_id")
        _require(revision, "revision")
        return self._model_root(model_id) / _SNAPSHOTS / revision

    def file_path_for(
        self, model_id: str, file_name: str, revision: str = DEFAULT_REVISION
    ) -> Path:
        _require(file_name, "file_name")
        return self.directory_for(model_id, revision) / file_name

    def cached_paths(
        self, descriptor: ModelDescriptor, revision: str = DEFAULT_REVISION
    ) -> CachedArtifactPaths:
        return CachedArtifactPaths(
            model_path=self.file_path_for(descriptor.id, descriptor.model_file, revision),
            tokenizer_path=self.file_path_for(
                descriptor.id, descriptor.tokenizer_file, revision
            ),
        )

    def ensure_directory(self, model_id: str, revision: str = DEFAULT_REVISION) -> Path:
        directory = self.directory_for(model_id, revision)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def exists(self, model_id: str, file_name: str, revision: str = DEFAULT_REVISION) -> bool:
        return self.file_path_for(model_id, file_name, revision).is_file()

    def delete(self, model_id: str, revision: str | None = None) -> bool:
        """Remove one revision, or every revision when ``revision`` is None.

        Returns True if anything was deleted.
        """
        model_root = self._model_root(_require(model_id, "model_id"))
        target = model_root if revision is None else model_root / _SNAPSHOTS / revision
        if not target.is_dir():
            return False
        shutil.rmtree(target)
        logger.info("Deleted cached model %s (revision=%s)", model_id, revision or "*")
        return True

    def list_cached(self) -> list[CachedModel]:
        if not self._root.is_dir():
            return []
        entries: list[CachedModel] = []
        for model_dir in sorted(self._root.glob(f"{_MODEL_PREFIX}*")):
            snapshots = model_dir / _SNAPSHOTS
            if not model_dir.is_dir() or not snapshots.is_dir():
                continue
            model_id = model_dir.name[len(_MODEL_PREFIX):].replace(_SEPARATOR, "/")
            for revision_dir in sorted(snapshots.iterdir()):
                if revision_dir.is_dir():
                    entries.append(
                        CachedModel(model_id=model_id, revision=revision_dir.name, path=revision_dir)
                    )
        return entries

    def size_on_disk(self, model_id: str | None = None) -> int | None:
        """Total bytes under the root or one model; None when it cannot be measured."""
        base = self._root if model_id is None else self._model_root(model_id)
        if not base.exists():
            return 0
        try:
            return sum(path.stat().st_size for path in base.rglob("*") if path.is_file())
        except OSError as exc:
            logger.debug("Could not measure cache size under %s: %s", base, exc)
            return None

    def _model_root(self, model_id: str) -> Path:
        return self._root / f"{_MODEL_PREFIX}{sanitize_model_id(model_id)}"


def _require(value: str, name: str) -> str:
    if not value or not value.strip():
        raise InvalidArgumentError(f"{name} must be a non-empty string.")
    return value


__all__ = [
    "CACHE_DIR_ENV",
    "DEFAULT_REVISION",
    "ModelCache",
    "default_cache_root",
    "resolve_cache_root",
    "sanitize_model_id",
]
