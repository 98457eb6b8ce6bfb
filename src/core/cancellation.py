"""Cooperative cancellation shared by downloads and scoring."""

from __future__ import annotations

import threading

from core.errors import OperationCancelledError


class CancellationToken:
    """Thread-safe flag checked at well-defined points.

    A token can be cancelled from any thread; work observes it at chunk
    boundaries and raises ``OperationCancelledError``.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled.")

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)


def raise_if_cancelled(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()


__all__ = ["CancellationToken", "raise_if_cancelled"]
