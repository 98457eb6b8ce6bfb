"""Model descriptor contracts consumed by acquisition and encoding."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ModelArchitecture(str, Enum):
    BERT = "bert"
    ROBERTA = "roberta"
    XLM_ROBERTA = "xlm_roberta"
    JINA_BERT = "jina_bert"


class OutputShape(str, Enum):
    """Layout of the logits tensor a model emits per batch."""

    SINGLE_LOGIT = "single_logit"  # [batch, 1] or [batch]
    BINARY_CLASSIFICATION = "binary_classification"  # [batch, 2]
    FLAT_LOGIT = "flat_logit"  # [batch]


class ModelDescriptor(BaseModel):
    """Static metadata for a cross-encoder model; identified by ``id``."""

    id: str = Field(min_length=1)
    alias: str
    display_name: str
    description: str = ""
    parameter_count: int = Field(default=0, ge=0)
    max_sequence_length: int = Field(default=512, ge=4)
    size_bytes: int = Field(default=0, ge=0)
    model_file: str = "onnx/model.onnx"
    tokenizer_file: str = "tokenizer.json"
    is_multilingual: bool = False
    architecture: ModelArchitecture = ModelArchitecture.BERT
    output_shape: OutputShape = OutputShape.SINGLE_LOGIT
    local_directory: Optional[Path] = None

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    @property
    def is_local(self) -> bool:
        return self.local_directory is not None

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024.0 * 1024.0)

    def __str__(self) -> str:
        return f"{self.display_name} ({self.size_mb:.0f}MB, {self.max_sequence_length} tokens)"


__all__ = ["ModelArchitecture", "ModelDescriptor", "OutputShape"]
