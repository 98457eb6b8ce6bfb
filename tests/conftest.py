# tests/conftest.py
from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import pytest

from core.config import RerankerOptions, get_settings
from persistence.models import CachedArtifactPaths
from retrieval.rerankers.cross_encoder import CrossEncoderReranker
from retrieval.rerankers.registry import ModelRegistry


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    # Keep developer environment variables and .env files out of the tests.
    for name in (
        "LOCALRERANKER_MODEL",
        "LOCALRERANKER_CACHE_DIR",
        "LOCALRERANKER_PROVIDER",
        "LOCALRERANKER_BATCH_SIZE",
        "LOCALRERANKER_THREAD_COUNT",
        "LOCALRERANKER_MAX_SEQUENCE_LENGTH",
        "LOCALRERANKER_DISABLE_AUTO_DOWNLOAD",
        "LOCALRERANKER_HUB_URL",
        "LOCALRERANKER_LOG_LEVEL",
        "HF_TOKEN",
        "HUGGINGFACE_HUB_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeTokenizer:
    """One id per whitespace-separated word: ``1000 + len(word)``."""

    cls_token_id = 101
    sep_token_id = 102
    pad_token_id = 0

    def __init__(self) -> None:
        self.closed = False

    def encode_to_ids(self, text: str) -> List[int]:
        return [1000 + len(word) for word in text.split()]

    def close(self) -> None:
        self.closed = True


def attention_length(batch) -> np.ndarray:
    return batch.attention_mask.sum(axis=1).astype(np.float32)


class FakeSession:
    """Returns ``[B, 1]`` logits computed by ``logit_fn(batch)``."""

    def __init__(self, logit_fn: Optional[Callable] = None) -> None:
        self._logit_fn = logit_fn or (lambda batch: attention_length(batch) - 8.0)
        self.calls: List[int] = []
        self.closed = False

    def run(self, batch) -> np.ndarray:
        self.calls.append(batch.batch_size)
        logits = np.asarray(self._logit_fn(batch), dtype=np.float32)
        return logits.reshape(batch.batch_size, 1)

    def close(self) -> None:
        self.closed = True


class FakeAcquirer:
    def __init__(self, root: Path, delay: float = 0.0, error: Optional[BaseException] = None) -> None:
        self.root = root
        self.delay = delay
        self.error = error
        self.calls = 0
        self._lock = threading.Lock()

    def ensure(self, descriptor, *, allow_download=True, revision="main", progress=None, cancellation=None):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CachedArtifactPaths(
            model_path=self.root / "model.onnx",
            tokenizer_path=self.root / "tokenizer.json",
        )


@pytest.fixture
def fake_tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture
def make_reranker(tmp_path: Path):
    """Build a reranker wired to fakes; returns (reranker, session, acquirer)."""

    def _factory(
        options: Optional[RerankerOptions] = None,
        *,
        session: Optional[FakeSession] = None,
        acquirer: Optional[FakeAcquirer] = None,
        tokenizer: Optional[FakeTokenizer] = None,
    ):
        session = session or FakeSession()
        acquirer = acquirer or FakeAcquirer(tmp_path)
        tokenizer = tokenizer or FakeTokenizer()
        reranker = CrossEncoderReranker(
            options or RerankerOptions(max_sequence_length=32),
            registry=ModelRegistry.with_defaults(),
            acquirer=acquirer,
            tokenizer_loader=lambda _path: tokenizer,
            inference_loader=lambda _path, _descriptor, _provider, _threads: session,
        )
        return reranker, session, acquirer

    return _factory


@pytest.fixture
def fake_session_cls():
    return FakeSession


@pytest.fixture
def fake_acquirer_cls():
    return FakeAcquirer
