"""Hashing and integrity helpers for cached model files."""

from __future__ import annotations

import hashlib
from pathlib import Path

LFS_POINTER_PREFIX = "version https://git-lfs.github.com/spec/"
LFS_POINTER_MAX_BYTES = 500


def sha256_bytes(data: bytes) -> str:
    """Return hex sha256 of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str | Path, *, chunk_size: int = 1024 * 1024) -> str:
    """Return sha256 of a file by streaming."""
    hasher = hashlib.sha256()
    with Path(path).open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def verify_sha256(path: str | Path, expected: str) -> bool:
    """Compare a file's digest against an expected hex string, ignoring case."""
    if not expected or not expected.strip():
        raise ValueError("expected hash must be non-empty")
    return sha256_file(path) == expected.strip().lower()


def is_pointer_file(path: str | Path) -> bool:
    """Return True if ``path`` looks like a git-lfs pointer rather than real content.

    Pointer files are tiny text stubs; anything larger than a few hundred
    bytes, missing, or unreadable is treated as real content.
    """
    target = Path(path)
    try:
        if not target.is_file() or target.stat().st_size > LFS_POINTER_MAX_BYTES:
            return False
        content = target.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return content.startswith(LFS_POINTER_PREFIX)


__all__ = [
    "LFS_POINTER_MAX_BYTES",
    "LFS_POINTER_PREFIX",
    "is_pointer_file",
    "sha256_bytes",
    "sha256_file",
    "verify_sha256",
]
