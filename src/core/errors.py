"""Error taxonomy surfaced to callers.

Every failure the library raises on purpose derives from ``RerankerError`` so
hosts can catch the family, while each kind stays distinguishable.
Cancellation is not a failure and lives outside the hierarchy.
"""

from __future__ import annotations

_PREVIEW_LIMIT = 100


class RerankerError(Exception):
    """Base class for reranker failures."""


class InvalidArgumentError(RerankerError, ValueError):
    """Bad caller input; never retried."""


class ModelNotFoundError(RerankerError):
    """Model could not be resolved, or is absent locally with downloads disabled."""

    def __init__(self, message: str, model_id: str) -> None:
        super().__init__(message)
        self.model_id = model_id


class DownloadFailedError(RerankerError):
    """A model file could not be fetched after the retry budget was spent."""

    def __init__(self, message: str, model_id: str, file_name: str | None = None) -> None:
        super().__init__(message)
        self.model_id = model_id
        self.file_name = file_name


class PointerFileError(DownloadFailedError):
    """The server returned a large-file pointer instead of the real content."""


class DownloadIncompleteError(RerankerError):
    """Files were still missing after a download pass."""

    def __init__(self, message: str, model_id: str, file_name: str | None = None) -> None:
        super().__init__(message)
        self.model_id = model_id
        self.file_name = file_name


class TokenizationError(RerankerError):
    """Tokenizer could not be loaded or rejected an input."""

    def __init__(self, message: str, input_text: str | None = None) -> None:
        super().__init__(message)
        self.input_preview = _preview(input_text) if input_text is not None else None


class InferenceError(RerankerError):
    """Inference session failed to load, raised, or returned malformed output."""


class RerankerClosedError(RerankerError):
    """Operation attempted on a reranker that was already closed."""


class OperationCancelledError(Exception):
    """Raised when a cancellation token fires; never wrapped in ``RerankerError``."""


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_LIMIT:
        return text[:_PREVIEW_LIMIT] + "..."
    return text


__all__ = [
    "DownloadFailedError",
    "DownloadIncompleteError",
    "InferenceError",
    "InvalidArgumentError",
    "ModelNotFoundError",
    "OperationCancelledError",
    "PointerFileError",
    "RerankerClosedError",
    "RerankerError",
    "TokenizationError",
]
