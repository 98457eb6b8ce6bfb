"""Model registry: map aliases, hub ids and local paths to descriptors."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from core.errors import ModelNotFoundError
from schemas.models import ModelArchitecture, ModelDescriptor

DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="cross-encoder/ms-marco-MiniLM-L-6-v2",
        alias="default",
        display_name="MS MARCO MiniLM L6",
        description="Balanced speed and quality for English text",
        parameter_count=22_700_000,
        max_sequence_length=512,
        size_bytes=90_000_000,
    ),
    ModelDescriptor(
        id="cross-encoder/ms-marco-MiniLM-L-12-v2",
        alias="quality",
        display_name="MS MARCO MiniLM L12",
        description="Higher quality at the cost of speed",
        parameter_count=33_400_000,
        max_sequence_length=512,
        size_bytes=134_000_000,
    ),
    ModelDescriptor(
        id="cross-encoder/ms-marco-TinyBERT-L-2-v2",
        alias="fast",
        display_name="MS MARCO TinyBERT L2",
        description="Ultra-fast for latency-critical applications",
        parameter_count=4_400_000,
        max_sequence_length=512,
        size_bytes=18_000_000,
    ),
    ModelDescriptor(
        id="BAAI/bge-reranker-v2-m3",
        alias="multilingual",
        display_name="BGE Reranker v2 M3",
        description="Best quality, multilingual support, long context",
        parameter_count=568_000_000,
        max_sequence_length=8192,
        size_bytes=1_100_000_000,
        is_multilingual=True,
        architecture=ModelArchitecture.XLM_ROBERTA,
    ),
    ModelDescriptor(
        id="BAAI/bge-reranker-base",
        alias="bge-base",
        display_name="BGE Reranker Base",
        description="Good quality multilingual model",
        parameter_count=278_000_000,
        max_sequence_length=512,
        size_bytes=440_000_000,
        is_multilingual=True,
        architecture=ModelArchitecture.XLM_ROBERTA,
    ),
)

_LOCAL_PREFIXES = ("./", "../", ".\\", "..\\")


@dataclass(frozen=True)
class ResolveResult:
    descriptor: Optional[ModelDescriptor] = None
    error: Optional[ModelNotFoundError] = None

    @property
    def ok(self) -> bool:
        return self.descriptor is not None


class ModelRegistry:
    """Case-insensitive lookup of model descriptors.

    Resolution order: local path, alias, full id, then any ``org/name`` id
    as a generic hub model with default metadata.
    """

    def __init__(self, models: Iterable[ModelDescriptor]) -> None:
        self._by_alias: Dict[str, ModelDescriptor] = {}
        self._by_id: Dict[str, ModelDescriptor] = {}
        for model in models:
            self._by_alias[model.alias.lower()] = model
            self._by_id[model.id.lower()] = model

    @classmethod
    def with_defaults(cls) -> "ModelRegistry":
        return cls(DEFAULT_MODELS)

    def resolve(self, model_id_or_alias: str) -> ModelDescriptor:
        if not model_id_or_alias or not model_id_or_alias.strip():
            raise ModelNotFoundError("Model identifier must not be empty.", model_id_or_alias or "")
        key = model_id_or_alias.strip()

        if is_local_path(key):
            return self.resolve_local_path(key)

        lookup = key.lower()
        if lookup in self._by_alias:
            return self._by_alias[lookup]
        if lookup in self._by_id:
            return self._by_id[lookup]
        if "/" in key:
            return _hub_descriptor(key)

        aliases = ", ".join(sorted(self._by_alias))
        raise ModelNotFoundError(
            f"Model '{key}' not found. Use a built-in alias ({aliases}), "
            "a hub model id (org/model), or a local file path.",
            key,
        )

    def try_resolve(self, model_id_or_alias: str) -> ResolveResult:
        try:
            return ResolveResult(descriptor=self.resolve(model_id_or_alias))
        except ModelNotFoundError as exc:
            return ResolveResult(error=exc)

    def resolve_local_path(self, path: str | Path) -> ModelDescriptor:
        full_path = Path(os.path.abspath(os.fspath(path)))
        size = full_path.stat().st_size if full_path.is_file() else 0
        return ModelDescriptor(
            id=str(full_path),
            alias="local",
            display_name=f"Local: {full_path.name}",
            description=f"Local model from {full_path.parent}",
            size_bytes=size,
            model_file=full_path.name,
            local_directory=full_path.parent,
        )

    def get_all(self) -> List[ModelDescriptor]:
        return list(self._by_id.values())

    def get_aliases(self) -> List[str]:
        return [model.alias for model in self._by_alias.values()]


def is_local_path(value: str) -> bool:
    return (
        value.lower().endswith(".onnx")
        or os.path.isabs(value)
        or value.startswith(_LOCAL_PREFIXES)
    )


def _hub_descriptor(model_id: str) -> ModelDescriptor:
    name = model_id.split("/", 1)[1] or model_id
    return ModelDescriptor(
        id=model_id,
        alias=model_id,
        display_name=name,
        description=f"Hub model: {model_id}",
    )


__all__ = [
    "DEFAULT_MODELS",
    "ModelRegistry",
    "ResolveResult",
    "is_local_path",
]
