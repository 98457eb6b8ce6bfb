"""ONNX Runtime session wrapper for cross-encoder models."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

import numpy as np
import onnxruntime as ort

from core.config import ExecutionProvider
from core.errors import InferenceError
from retrieval.rerankers.encoding import EncodedBatch
from schemas.models import ModelDescriptor

logger = logging.getLogger(__name__)

CPU_PROVIDER = "CPUExecutionProvider"
CUDA_PROVIDER = "CUDAExecutionProvider"
DIRECTML_PROVIDER = "DmlExecutionProvider"
COREML_PROVIDER = "CoreMLExecutionProvider"


def resolve_providers(
    preference: ExecutionProvider,
    available: Optional[Sequence[str]] = None,
    *,
    platform: Optional[str] = None,
) -> List[str]:
    """Ordered provider list for a preference; CPU is always the last resort."""
    available = list(ort.get_available_providers() if available is None else available)
    platform = platform or sys.platform

    candidates: List[str] = []
    if preference is ExecutionProvider.CUDA:
        candidates = [CUDA_PROVIDER]
    elif preference is ExecutionProvider.DIRECTML and platform.startswith("win"):
        candidates = [DIRECTML_PROVIDER]
    elif preference is ExecutionProvider.COREML and platform == "darwin":
        candidates = [COREML_PROVIDER]
    elif preference is ExecutionProvider.AUTO:
        candidates = [CUDA_PROVIDER]
        if platform.startswith("win"):
            candidates.append(DIRECTML_PROVIDER)
        elif platform == "darwin":
            candidates.append(COREML_PROVIDER)

    providers: List[str] = []
    for name in candidates:
        if name in available:
            providers.append(name)
            break
    providers.append(CPU_PROVIDER)
    return providers


class OnnxCrossEncoderSession:
    """Run encoded batches through an ONNX cross-encoder graph.

    ``token_type_ids`` is only fed when the graph declares that input.
    """

    def __init__(self, session: Any) -> None:
        self._session = session
        self._input_names = [item.name for item in session.get_inputs()]
        self._output_name = session.get_outputs()[0].name
        self.uses_token_type_ids = "token_type_ids" in self._input_names

    @classmethod
    def create(
        cls,
        model_path: str | Path,
        provider: ExecutionProvider = ExecutionProvider.AUTO,
        thread_count: Optional[int] = None,
    ) -> "OnnxCrossEncoderSession":
        path = Path(model_path)
        if not path.is_file():
            raise InferenceError(f"Model file not found: {path}")

        providers = resolve_providers(provider)
        options = _session_options(thread_count)
        try:
            session = ort.InferenceSession(str(path), sess_options=options, providers=providers)
        except Exception as exc:
            if providers == [CPU_PROVIDER]:
                raise InferenceError(f"Failed to load ONNX model from {path}") from exc
            logger.warning(
                "Could not create session with %s (%s); falling back to CPU.", providers, exc
            )
            try:
                session = ort.InferenceSession(
                    str(path), sess_options=_session_options(thread_count), providers=[CPU_PROVIDER]
                )
            except Exception as cpu_exc:
                raise InferenceError(f"Failed to load ONNX model from {path}") from cpu_exc

        logger.info("Loaded %s with providers=%s", path, session.get_providers())
        return cls(session)

    @property
    def providers(self) -> List[str]:
        if self._session is None:
            return []
        return list(self._session.get_providers())

    def run(self, batch: EncodedBatch) -> np.ndarray:
        if self._session is None:
            raise InferenceError("Inference session has been closed.")
        feed = {
            "input_ids": batch.input_ids,
            "attention_mask": batch.attention_mask,
        }
        if self.uses_token_type_ids:
            feed["token_type_ids"] = batch.token_type_ids
        try:
            outputs = self._session.run([self._output_name], feed)
        except Exception as exc:
            raise InferenceError("Model inference failed") from exc
        return np.asarray(outputs[0])

    def close(self) -> None:
        self._session = None


def load_inference_session(
    model_path: Path,
    descriptor: ModelDescriptor,
    provider: ExecutionProvider,
    thread_count: Optional[int],
) -> OnnxCrossEncoderSession:
    logger.debug("Creating inference session for %s", descriptor.id)
    return OnnxCrossEncoderSession.create(model_path, provider, thread_count)


def _session_options(thread_count: Optional[int]) -> "ort.SessionOptions":
    options = ort.SessionOptions()
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    options.execution_mode = ort.ExecutionMode.ORT_PARALLEL
    threads = thread_count or os.cpu_count() or 1
    options.intra_op_num_threads = threads
    options.inter_op_num_threads = max(1, threads // 2)
    return options


__all__ = [
    "CPU_PROVIDER",
    "OnnxCrossEncoderSession",
    "load_inference_session",
    "resolve_providers",
]
