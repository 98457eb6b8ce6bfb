"""Convert raw cross-encoder logits into relevance scores in [0, 1]."""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Sequence

import numpy as np

from core.errors import InferenceError
from schemas.models import OutputShape

SIGMOID_SATURATION = 20.0
_RANGE_EPSILON = 1e-12


def sigmoid(logit: float) -> float:
    """Logistic function with exact saturation beyond +/-20."""
    if logit >= SIGMOID_SATURATION:
        return 1.0
    if logit <= -SIGMOID_SATURATION:
        return 0.0
    return 1.0 / (1.0 + math.exp(-logit))


def sigmoid_many(logits: Sequence[float]) -> List[float]:
    return [sigmoid(float(value)) for value in logits]


def softmax_positive(logit0: float, logit1: float) -> float:
    """Probability mass on the positive (second) class of a two-way softmax."""
    max_logit = max(logit0, logit1)
    if math.isinf(max_logit):
        if logit0 == logit1:
            return 0.5
        return 1.0 if logit1 > logit0 else 0.0
    exp0 = math.exp(logit0 - max_logit)
    exp1 = math.exp(logit1 - max_logit)
    return exp1 / (exp0 + exp1)


def min_max_normalize(scores: Sequence[float]) -> List[float]:
    if len(scores) == 0:
        return []
    if len(scores) == 1:
        return [1.0]
    low = min(scores)
    high = max(scores)
    span = high - low
    if span < _RANGE_EPSILON:
        return [0.5] * len(scores)
    return [(float(score) - low) / span for score in scores]


def _single_logit(logits: np.ndarray, batch_size: int) -> List[float]:
    if logits.ndim == 2 and logits.shape == (batch_size, 1):
        return sigmoid_many(logits[:, 0].tolist())
    if logits.ndim == 1 and logits.shape[0] == batch_size:
        return sigmoid_many(logits.tolist())
    raise InferenceError(
        f"Expected logits of shape [{batch_size}, 1] or [{batch_size}], got {list(logits.shape)}."
    )


def _binary_classification(logits: np.ndarray, batch_size: int) -> List[float]:
    if logits.ndim != 2 or logits.shape != (batch_size, 2):
        raise InferenceError(
            f"Expected logits of shape [{batch_size}, 2], got {list(logits.shape)}."
        )
    return [softmax_positive(float(row[0]), float(row[1])) for row in logits]


def _flat_logit(logits: np.ndarray, batch_size: int) -> List[float]:
    flattened = logits.reshape(-1)
    if flattened.shape[0] != batch_size:
        raise InferenceError(
            f"Expected {batch_size} flat logits, got {flattened.shape[0]}."
        )
    return sigmoid_many(flattened.tolist())


SHAPE_NORMALIZERS: Dict[OutputShape, Callable[[np.ndarray, int], List[float]]] = {
    OutputShape.SINGLE_LOGIT: _single_logit,
    OutputShape.BINARY_CLASSIFICATION: _binary_classification,
    OutputShape.FLAT_LOGIT: _flat_logit,
}


def normalize_output(shape: OutputShape, logits: object, batch_size: int) -> List[float]:
    """Route a raw output tensor through the normalizer its shape declares."""
    array = np.asarray(logits, dtype=np.float64)
    if np.isnan(array).any():
        raise InferenceError("Model returned NaN logits.")
    return SHAPE_NORMALIZERS[shape](array, batch_size)


__all__ = [
    "SHAPE_NORMALIZERS",
    "SIGMOID_SATURATION",
    "min_max_normalize",
    "normalize_output",
    "sigmoid",
    "sigmoid_many",
    "softmax_positive",
]
