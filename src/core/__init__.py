"""Core configuration, error taxonomy and cancellation."""

from dotenv import load_dotenv

from .cancellation import CancellationToken
from .config import ExecutionProvider, RerankerOptions, Settings, get_settings
from .errors import (
    DownloadFailedError,
    DownloadIncompleteError,
    InferenceError,
    InvalidArgumentError,
    ModelNotFoundError,
    OperationCancelledError,
    PointerFileError,
    RerankerClosedError,
    RerankerError,
    TokenizationError,
)

load_dotenv()

__all__ = [
    "CancellationToken",
    "DownloadFailedError",
    "DownloadIncompleteError",
    "ExecutionProvider",
    "InferenceError",
    "InvalidArgumentError",
    "ModelNotFoundError",
    "OperationCancelledError",
    "PointerFileError",
    "RerankerClosedError",
    "RerankerError",
    "RerankerOptions",
    "Settings",
    "TokenizationError",
    "get_settings",
]
