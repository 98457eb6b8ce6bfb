"""Local, offline cross-encoder reranking.

    >>> import localrerank
    >>> with localrerank.load("default") as reranker:
    ...     results = reranker.rerank("what is python?", documents, top_k=3)
"""

from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import List, Optional

from core.cancellation import CancellationToken
from core.config import ExecutionProvider, RerankerOptions
from core.errors import (
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
from persistence.fetcher import ProgressSink
from persistence.models import DownloadProgress
from retrieval.rerankers.contracts import Reranker
from retrieval.rerankers.cross_encoder import CrossEncoderReranker, RerankerState
from retrieval.rerankers.registry import ModelRegistry
from schemas.models import ModelDescriptor
from schemas.results import ScoredCandidate

try:
    __version__ = pkg_version("localrerank")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"


def load(
    model_id: Optional[str] = None,
    options: Optional[RerankerOptions] = None,
    *,
    progress: Optional[ProgressSink] = None,
    cancellation: Optional[CancellationToken] = None,
) -> CrossEncoderReranker:
    """Create a reranker for ``model_id`` and load it eagerly.

    Without ``options``, defaults come from the ``LOCALRERANKER_*``
    environment; ``model_id`` overrides the configured model.
    """
    if options is None:
        overrides = {"model_id": model_id} if model_id is not None else {}
        options = RerankerOptions.from_settings(**overrides)
    reranker = CrossEncoderReranker(options, progress=progress)
    try:
        reranker.warmup(cancellation=cancellation)
    except BaseException:
        reranker.close()
        raise
    return reranker


def available_models() -> List[str]:
    """Aliases of the built-in models."""
    return ModelRegistry.with_defaults().get_aliases()


def all_models() -> List[ModelDescriptor]:
    return ModelRegistry.with_defaults().get_all()


__all__ = [
    "CancellationToken",
    "CrossEncoderReranker",
    "DownloadFailedError",
    "DownloadIncompleteError",
    "DownloadProgress",
    "ExecutionProvider",
    "InferenceError",
    "InvalidArgumentError",
    "ModelDescriptor",
    "ModelNotFoundError",
    "OperationCancelledError",
    "PointerFileError",
    "Reranker",
    "RerankerClosedError",
    "RerankerError",
    "RerankerOptions",
    "RerankerState",
    "ScoredCandidate",
    "TokenizationError",
    "__version__",
    "all_models",
    "available_models",
    "load",
]
