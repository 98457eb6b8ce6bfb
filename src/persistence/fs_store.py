"""Atomic file writes for the model cache.

Content is written to a unique temp file beside the destination, optionally
verified, then renamed over the final path. A failed or cancelled write
removes the temp file and never touches an existing final file.
"""

from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


def temp_path_for(final_path: Path) -> Path:
    return final_path.with_name(f".{final_path.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp")


@contextmanager
def atomic_write(
    final_path: str | Path,
    *,
    verify: Callable[[Path], None] | None = None,
) -> Iterator[Path]:
    """Yield a temp path; on clean exit verify it and move it to ``final_path``.

    ``verify`` should raise to reject the content. Any exception raised in the
    block or by ``verify`` deletes the temp file and propagates unchanged.
    """
    target = Path(final_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = temp_path_for(target)
    try:
        yield temp_path
        if not temp_path.exists():
            raise FileNotFoundError(f"Nothing was written to {temp_path}")
        if verify is not None:
            verify(temp_path)
        os.replace(temp_path, target)
    except BaseException:
        remove_quietly(temp_path)
        raise


def write_bytes_atomic(final_path: str | Path, data: bytes) -> Path:
    target = Path(final_path)
    with atomic_write(target) as temp_path:
        temp_path.write_bytes(data)
    return target


def remove_quietly(path: Path) -> None:
    """Best-effort delete; cleanup failures are logged, not raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temp file %s: %s", path, exc)


__all__ = ["atomic_write", "remove_quietly", "temp_path_for", "write_bytes_atomic"]
