"""Cross-encoder reranker over a local ONNX model.

Default model: cross-encoder/ms-marco-MiniLM-L-6-v2 (alias ``default``).
The model is resolved, acquired and loaded on first use; every later call
reuses the same runtime until ``close``.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, cast

import numpy as np

from core.cancellation import CancellationToken, raise_if_cancelled
from core.config import RerankerOptions, get_settings
from core.errors import (
    InferenceError,
    InvalidArgumentError,
    OperationCancelledError,
    RerankerClosedError,
    RerankerError,
    TokenizationError,
)
from persistence.cache import ModelCache, resolve_cache_root
from persistence.contracts import ArtifactAcquirer
from persistence.fetcher import HubFetcher, ProgressSink
from persistence.manager import ModelAcquirer
from retrieval.rerankers.contracts import (
    InferenceLoader,
    InferenceSessionLike,
    TokenizerLike,
    TokenizerLoader,
)
from retrieval.rerankers.encoding import EncodedBatch, PairEncoder
from retrieval.rerankers.inference import load_inference_session
from retrieval.rerankers.normalization import normalize_output
from retrieval.rerankers.registry import ModelRegistry
from retrieval.rerankers.tokenization import WordPieceTokenizer
from schemas.models import ModelDescriptor
from schemas.results import ScoredCandidate

logger = logging.getLogger(__name__)

_WAIT_POLL_SECONDS = 0.05


class RerankerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass
class _Runtime:
    descriptor: ModelDescriptor
    tokenizer: TokenizerLike
    session: InferenceSessionLike
    encoder: PairEncoder


class _InitAttempt:
    """One in-flight initialization that concurrent callers wait on."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.runtime: Optional[_Runtime] = None
        self.error: Optional[BaseException] = None

    def finish(self, runtime: Optional[_Runtime], error: Optional[BaseException]) -> None:
        self.runtime = runtime
        self.error = error
        self.done.set()

    def result(self) -> _Runtime:
        if self.error is not None:
            raise self.error
        return cast(_Runtime, self.runtime)


class CrossEncoderReranker:
    """Score (query, document) pairs jointly and return them by relevance.

    Safe to share between threads: initialization runs exactly once however
    many callers race on the first request, and inference calls are
    serialized on a per-instance lock. Initialization runs on a background
    thread that only ``close`` can cancel; a caller's own token stops its
    wait, not the shared attempt. A failed initialization is reported to
    every caller that waited on it; the next call starts a fresh attempt.
    """

    def __init__(
        self,
        options: Optional[RerankerOptions] = None,
        *,
        registry: Optional[ModelRegistry] = None,
        acquirer: Optional[ArtifactAcquirer] = None,
        tokenizer_loader: Optional[TokenizerLoader] = None,
        inference_loader: Optional[InferenceLoader] = None,
        progress: Optional[ProgressSink] = None,
    ) -> None:
        self._options = options or RerankerOptions.from_settings()
        self._registry = registry or ModelRegistry.with_defaults()
        self._acquirer = acquirer
        self._owned_fetcher: Optional[HubFetcher] = None
        self._tokenizer_loader = tokenizer_loader or WordPieceTokenizer.from_file
        self._inference_loader = inference_loader or load_inference_session
        self._progress = progress

        self._init_lock = threading.Lock()
        self._inference_lock = threading.Lock()
        self._attempt: Optional[_InitAttempt] = None
        self._shutdown = CancellationToken()
        self._runtime: Optional[_Runtime] = None
        self._failed = False
        self._closed = False
        self.name = "cross_encoder"

    @property
    def options(self) -> RerankerOptions:
        return self._options

    @property
    def state(self) -> RerankerState:
        with self._init_lock:
            if self._closed:
                return RerankerState.CLOSED
            if self._runtime is not None:
                return RerankerState.READY
            if self._attempt is not None:
                return RerankerState.INITIALIZING
            if self._failed:
                return RerankerState.FAILED
            return RerankerState.UNINITIALIZED

    def model_info(self) -> Optional[ModelDescriptor]:
        runtime = self._runtime
        return runtime.descriptor if runtime is not None else None

    def warmup(self, *, cancellation: Optional[CancellationToken] = None) -> None:
        self._ensure_runtime(cancellation)

    def rerank(
        self,
        query: str,
        documents: Sequence[str],
        top_k: Optional[int] = None,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[ScoredCandidate]:
        documents = list(documents) if documents is not None else []
        _validate_inputs(query, documents)
        if top_k is not None and top_k < 1:
            raise InvalidArgumentError(f"top_k must be >= 1, got {top_k}.")

        scores = self._score_documents(query, documents, cancellation)
        candidates = [
            ScoredCandidate(original_index=index, score=score, document=document)
            for index, (score, document) in enumerate(zip(scores, documents))
        ]
        ranked = sorted(candidates, key=lambda item: item.score, reverse=True)
        return ranked[:top_k] if top_k is not None else ranked

    def score(
        self,
        query: str,
        documents: Sequence[str],
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[float]:
        documents = list(documents) if documents is not None else []
        _validate_inputs(query, documents)
        return self._score_documents(query, documents, cancellation)

    def rerank_batch(
        self,
        queries: Sequence[str],
        document_sets: Sequence[Sequence[str]],
        top_k: Optional[int] = None,
        *,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[List[ScoredCandidate]]:
        queries = list(queries)
        document_sets = list(document_sets)
        if len(queries) != len(document_sets):
            raise InvalidArgumentError(
                f"Number of queries ({len(queries)}) must match number of "
                f"document sets ({len(document_sets)})."
            )
        results: List[List[ScoredCandidate]] = []
        for query, documents in zip(queries, document_sets):
            raise_if_cancelled(cancellation)
            results.append(self.rerank(query, documents, top_k, cancellation=cancellation))
        return results

    def close(self) -> None:
        with self._init_lock:
            if self._closed:
                return
            self._closed = True
            attempt = self._attempt

        self._shutdown.cancel()
        if attempt is not None:
            # Errors from the pending attempt belong to its callers.
            attempt.done.wait()

        with self._init_lock:
            runtime = self._runtime
            self._runtime = None

        if runtime is not None:
            with self._inference_lock:
                _release(runtime)
        if self._owned_fetcher is not None:
            self._owned_fetcher.close()
            self._owned_fetcher = None
        logger.debug("Reranker for %s closed", self._options.model_id)

    def __enter__(self) -> "CrossEncoderReranker":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def _score_documents(
        self,
        query: str,
        documents: List[str],
        cancellation: Optional[CancellationToken],
    ) -> List[float]:
        runtime = self._ensure_runtime(cancellation)
        batch_size = self._options.batch_size
        scores: List[float] = [0.0] * len(documents)

        for start in range(0, len(documents), batch_size):
            raise_if_cancelled(cancellation)
            chunk = documents[start : start + batch_size]
            batch = runtime.encoder.encode_batch(query, chunk)
            logits = self._run_inference(runtime, batch)
            raise_if_cancelled(cancellation)
            chunk_scores = normalize_output(runtime.descriptor.output_shape, logits, len(chunk))
            scores[start : start + len(chunk)] = chunk_scores

        return scores

    def _run_inference(self, runtime: _Runtime, batch: EncodedBatch) -> np.ndarray:
        with self._inference_lock:
            if self._closed:
                raise RerankerClosedError("Reranker has been closed.")
            try:
                return runtime.session.run(batch)
            except (RerankerError, OperationCancelledError):
                raise
            except Exception as exc:
                raise InferenceError(
                    f"Inference failed for model '{runtime.descriptor.id}'."
                ) from exc

    def _ensure_runtime(self, cancellation: Optional[CancellationToken]) -> _Runtime:
        runtime = self._runtime
        if runtime is not None and not self._closed:
            return runtime

        with self._init_lock:
            if self._closed:
                raise RerankerClosedError("Reranker has been closed.")
            if self._runtime is not None:
                return self._runtime
            attempt = self._attempt
            if attempt is None:
                attempt = _InitAttempt()
                self._attempt = attempt
                threading.Thread(
                    target=self._run_attempt,
                    args=(attempt,),
                    name="localrerank-init",
                    daemon=True,
                ).start()

        return self._await(attempt, cancellation)

    def _run_attempt(self, attempt: _InitAttempt) -> None:
        try:
            runtime = self._initialize(self._shutdown)
        except BaseException as exc:
            with self._init_lock:
                self._attempt = None
                self._failed = True
            attempt.finish(None, exc)
            return

        with self._init_lock:
            self._runtime = runtime
            self._attempt = None
            self._failed = False
        attempt.finish(runtime, None)

    def _await(
        self, attempt: _InitAttempt, cancellation: Optional[CancellationToken]
    ) -> _Runtime:
        while not attempt.done.wait(_WAIT_POLL_SECONDS):
            raise_if_cancelled(cancellation)
        if self._closed and isinstance(attempt.error, OperationCancelledError):
            raise RerankerClosedError(
                "Reranker was closed during initialization."
            ) from attempt.error
        return attempt.result()

    def _initialize(self, cancellation: CancellationToken) -> _Runtime:
        options = self._options
        started = time.perf_counter()
        logger.info("Initializing reranker for '%s'", options.model_id)

        descriptor = self._registry.resolve(options.model_id)
        raise_if_cancelled(cancellation)

        paths = self._get_acquirer().ensure(
            descriptor,
            allow_download=not options.disable_auto_download,
            revision=options.revision,
            progress=self._progress,
            cancellation=cancellation,
        )
        raise_if_cancelled(cancellation)

        tokenizer = self._load_tokenizer(paths.tokenizer_path)
        try:
            session = self._load_session(paths.model_path, descriptor)
        except BaseException:
            _close_quietly(tokenizer)
            raise

        max_length = options.max_sequence_length or descriptor.max_sequence_length
        try:
            encoder = PairEncoder(tokenizer, max_length)
        except BaseException:
            _close_quietly(session)
            _close_quietly(tokenizer)
            raise

        logger.info(
            "Reranker ready: %s in %.2fs", descriptor, time.perf_counter() - started
        )
        return _Runtime(descriptor=descriptor, tokenizer=tokenizer, session=session, encoder=encoder)

    def _load_tokenizer(self, path: Path) -> TokenizerLike:
        try:
            return self._tokenizer_loader(path)
        except (RerankerError, OperationCancelledError):
            raise
        except Exception as exc:
            raise TokenizationError(f"Failed to load tokenizer from {path}") from exc

    def _load_session(self, path: Path, descriptor: ModelDescriptor) -> InferenceSessionLike:
        try:
            return self._inference_loader(
                path, descriptor, self._options.provider, self._options.thread_count
            )
        except (RerankerError, OperationCancelledError):
            raise
        except Exception as exc:
            raise InferenceError(f"Failed to load model from {path}") from exc

    def _get_acquirer(self) -> ArtifactAcquirer:
        if self._acquirer is None:
            settings = get_settings()
            cache = ModelCache(resolve_cache_root(self._options.cache_directory))
            self._owned_fetcher = HubFetcher(
                base_url=settings.hub_url,
                token=settings.hub_token,
                max_attempts=settings.download_max_attempts,
                timeout=settings.download_timeout,
            )
            self._acquirer = ModelAcquirer(cache, self._owned_fetcher)
        return self._acquirer


def _validate_inputs(query: str, documents: Sequence[str]) -> None:
    if query is None or not str(query).strip():
        raise InvalidArgumentError("query must be a non-empty string.")
    if not documents:
        raise InvalidArgumentError("documents must not be empty.")


def _release(runtime: _Runtime) -> None:
    _close_quietly(runtime.session)
    _close_quietly(runtime.tokenizer)


def _close_quietly(resource: object) -> None:
    close = getattr(resource, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception as exc:
        logger.warning("Failed to release %s: %s", type(resource).__name__, exc)


__all__ = [
    "CrossEncoderReranker",
    "RerankerState",
]
