"""Shared contracts for rerankers and their collaborators.

Rerankers score (query, document) pairs jointly. They must be deterministic
for a fixed model and options; ties in ranking keep the caller's input order.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Sequence

import numpy as np

from core.cancellation import CancellationToken
from core.config import ExecutionProvider
from schemas.models import ModelDescriptor
from schemas.results import ScoredCandidate

if TYPE_CHECKING:
    from retrieval.rerankers.encoding import EncodedBatch


class TokenizerLike(Protocol):
    cls_token_id: int
    sep_token_id: int
    pad_token_id: int

    def encode_to_ids(self, text: str) -> List[int]: ...

    def close(self) -> None: ...


class InferenceSessionLike(Protocol):
    """Runs a frozen encoded batch and returns the raw logits tensor."""

    def run(self, batch: "EncodedBatch") -> np.ndarray: ...

    def close(self) -> None: ...


TokenizerLoader = Callable[[Path], TokenizerLike]
InferenceLoader = Callable[
    [Path, ModelDescriptor, ExecutionProvider, Optional[int]], InferenceSessionLike
]


class Reranker(Protocol):
    """Public reranking interface."""

    def rerank(
        self,
        query: str,
        documents: Sequence[str],
        top_k: Optional[int] = None,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[ScoredCandidate]: ...

    def score(
        self,
        query: str,
        documents: Sequence[str],
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[float]: ...

    def rerank_batch(
        self,
        queries: Sequence[str],
        document_sets: Sequence[Sequence[str]],
        top_k: Optional[int] = None,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[List[ScoredCandidate]]: ...

    def warmup(self, *, cancellation: Optional[CancellationToken] = None) -> None: ...

    def model_info(self) -> Optional[ModelDescriptor]: ...

    def close(self) -> None: ...


__all__ = [
    "InferenceLoader",
    "InferenceSessionLike",
    "Reranker",
    "TokenizerLike",
    "TokenizerLoader",
]
