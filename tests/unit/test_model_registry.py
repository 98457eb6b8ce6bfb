from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import ModelNotFoundError
from retrieval.rerankers.registry import DEFAULT_MODELS, ModelRegistry, is_local_path
from schemas.models import ModelArchitecture


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry.with_defaults()


@pytest.mark.parametrize(
    "alias, model_id",
    [
        ("default", "cross-encoder/ms-marco-MiniLM-L-6-v2"),
        ("quality", "cross-encoder/ms-marco-MiniLM-L-12-v2"),
        ("fast", "cross-encoder/ms-marco-TinyBERT-L-2-v2"),
        ("multilingual", "BAAI/bge-reranker-v2-m3"),
        ("bge-base", "BAAI/bge-reranker-base"),
    ],
)
def test_builtin_aliases(registry: ModelRegistry, alias: str, model_id: str) -> None:
    assert registry.resolve(alias).id == model_id


def test_lookup_is_case_insensitive(registry: ModelRegistry) -> None:
    assert registry.resolve("DEFAULT").alias == "default"
    assert registry.resolve("baai/BGE-reranker-v2-m3").max_sequence_length == 8192


def test_multilingual_metadata(registry: ModelRegistry) -> None:
    model = registry.resolve("multilingual")
    assert model.is_multilingual
    assert model.architecture is ModelArchitecture.XLM_ROBERTA
    assert str(model) == "BGE Reranker v2 M3 (1049MB, 8192 tokens)"


def test_unknown_name_raises(registry: ModelRegistry) -> None:
    with pytest.raises(ModelNotFoundError) as info:
        registry.resolve("nonexistent")
    assert info.value.model_id == "nonexistent"


def test_unregistered_hub_id_gets_generic_descriptor(registry: ModelRegistry) -> None:
    model = registry.resolve("someorg/custom-reranker")
    assert model.id == "someorg/custom-reranker"
    assert model.display_name == "custom-reranker"
    assert model.max_sequence_length == 512
    assert model.model_file == "onnx/model.onnx"
    assert not model.is_local


def test_try_resolve_returns_result(registry: ModelRegistry) -> None:
    good = registry.try_resolve("fast")
    assert good.ok and good.error is None
    bad = registry.try_resolve("nonexistent")
    assert not bad.ok
    assert isinstance(bad.error, ModelNotFoundError)


def test_local_path_descriptor(registry: ModelRegistry, tmp_path: Path) -> None:
    model_path = tmp_path / "custom.onnx"
    model_path.write_bytes(b"12345")

    model = registry.resolve(str(model_path))

    assert model.is_local
    assert model.alias == "local"
    assert model.local_directory == tmp_path
    assert model.model_file == "custom.onnx"
    assert model.tokenizer_file == "tokenizer.json"
    assert model.size_bytes == 5


@pytest.mark.parametrize(
    "value, expected",
    [
        ("model.ONNX", True),
        ("./models/x", True),
        ("../x", True),
        ("/abs/path", True),
        ("org/name", False),
        ("default", False),
    ],
)
def test_local_path_detection(value: str, expected: bool) -> None:
    assert is_local_path(value) is expected


def test_listing(registry: ModelRegistry) -> None:
    assert [model.id for model in registry.get_all()] == [model.id for model in DEFAULT_MODELS]
    assert registry.get_aliases() == ["default", "quality", "fast", "multilingual", "bge-base"]
