"""Persistence subsystem exports."""

from persistence.cache import ModelCache, resolve_cache_root
from persistence.fetcher import HubFetcher
from persistence.manager import ModelAcquirer
from persistence.models import CachedArtifactPaths, CachedModel, DownloadProgress

__all__ = [
    "CachedArtifactPaths",
    "CachedModel",
    "DownloadProgress",
    "HubFetcher",
    "ModelAcquirer",
    "ModelCache",
    "resolve_cache_root",
]
