from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import DownloadIncompleteError, ModelNotFoundError
from persistence.cache import ModelCache
from persistence.hashing import LFS_POINTER_PREFIX
from persistence.manager import ModelAcquirer
from retrieval.rerankers.registry import ModelRegistry


class RecordingFetcher:
    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads = payloads
        self.calls: list[tuple[str, str, str]] = []

    def fetch(self, model_id, file_name, destination, *, revision="main", progress=None, cancellation=None):
        self.calls.append((model_id, file_name, revision))
        target = Path(destination)
        target.parent.mkdir(parents=True, exist_ok=True)
        if self.payloads is None or file_name in self.payloads:
            payload = (self.payloads or {}).get(file_name, b"content-" + file_name.encode())
            target.write_bytes(payload)
        return target


@pytest.fixture
def descriptor():
    return ModelRegistry.with_defaults().resolve("default")


def _populate(cache: ModelCache, descriptor, revision: str = "main") -> None:
    paths = cache.cached_paths(descriptor, revision)
    paths.model_path.parent.mkdir(parents=True, exist_ok=True)
    paths.model_path.write_bytes(b"onnx")
    paths.tokenizer_path.write_text("{}", encoding="utf-8")


def test_cache_hit_skips_fetcher(tmp_path: Path, descriptor) -> None:
    cache = ModelCache(tmp_path)
    _populate(cache, descriptor)
    fetcher = RecordingFetcher()

    paths = ModelAcquirer(cache, fetcher).ensure(descriptor)

    assert fetcher.calls == []
    assert paths.model_path.read_bytes() == b"onnx"
    assert ModelAcquirer(cache, fetcher).cached(descriptor) == paths


def test_downloads_missing_files(tmp_path: Path, descriptor) -> None:
    cache = ModelCache(tmp_path)
    fetcher = RecordingFetcher()

    paths = ModelAcquirer(cache, fetcher).ensure(descriptor, revision="v2")

    assert fetcher.calls == [
        (descriptor.id, "onnx/model.onnx", "v2"),
        (descriptor.id, "tokenizer.json", "v2"),
    ]
    assert paths.model_path.is_file()
    assert paths.tokenizer_path.is_file()


def test_pointer_in_cache_is_refetched(tmp_path: Path, descriptor) -> None:
    cache = ModelCache(tmp_path)
    _populate(cache, descriptor)
    paths = cache.cached_paths(descriptor)
    paths.model_path.write_text(f"{LFS_POINTER_PREFIX}v1\nsize 1\n", encoding="utf-8")
    fetcher = RecordingFetcher()

    ModelAcquirer(cache, fetcher).ensure(descriptor)

    assert fetcher.calls == [(descriptor.id, "onnx/model.onnx", "main")]
    assert paths.model_path.read_bytes() == b"content-onnx/model.onnx"


def test_download_disabled_raises_not_found(tmp_path: Path, descriptor) -> None:
    fetcher = RecordingFetcher()
    with pytest.raises(ModelNotFoundError) as info:
        ModelAcquirer(ModelCache(tmp_path), fetcher).ensure(descriptor, allow_download=False)
    assert info.value.model_id == descriptor.id
    assert fetcher.calls == []


def test_incomplete_download_detected(tmp_path: Path, descriptor) -> None:
    fetcher = RecordingFetcher(payloads={"onnx/model.onnx": b"onnx"})
    with pytest.raises(DownloadIncompleteError) as info:
        ModelAcquirer(ModelCache(tmp_path), fetcher).ensure(descriptor)
    assert info.value.file_name == "tokenizer.json"


def test_local_model_never_downloads(tmp_path: Path) -> None:
    model_path = tmp_path / "local" / "model.onnx"
    model_path.parent.mkdir()
    model_path.write_bytes(b"onnx")
    local = ModelRegistry.with_defaults().resolve(str(model_path))
    fetcher = RecordingFetcher()
    acquirer = ModelAcquirer(ModelCache(tmp_path / "cache"), fetcher)

    with pytest.raises(ModelNotFoundError):
        acquirer.ensure(local)

    (model_path.parent / "tokenizer.json").write_text("{}", encoding="utf-8")
    paths = acquirer.ensure(local)
    assert paths.model_path == model_path
    assert fetcher.calls == []
