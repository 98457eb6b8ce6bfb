"""Pair encoding for cross-encoders.

A (query, document) pair becomes ``[CLS] query [SEP] document [SEP] [PAD]...``
at a fixed length. When the pair does not fit, the query keeps up to half of
the content budget and the document absorbs the rest of the truncation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.errors import InvalidArgumentError, TokenizationError
from retrieval.rerankers.contracts import TokenizerLike

SPECIAL_TOKEN_COUNT = 3


@dataclass(frozen=True)
class EncodedExample:
    input_ids: np.ndarray
    attention_mask: np.ndarray
    token_type_ids: np.ndarray
    length: int


class EncodedBatch:
    """Fixed ``[batch_size, seq_len]`` int64 tensors filled one slot at a time."""

    def __init__(self, batch_size: int, seq_len: int) -> None:
        self.batch_size = batch_size
        self.seq_len = seq_len
        self.input_ids = np.zeros((batch_size, seq_len), dtype=np.int64)
        self.attention_mask = np.zeros((batch_size, seq_len), dtype=np.int64)
        self.token_type_ids = np.zeros((batch_size, seq_len), dtype=np.int64)
        self._filled = [False] * batch_size

    def set_example(self, index: int, example: EncodedExample) -> None:
        if not self.input_ids.flags.writeable:
            raise RuntimeError("EncodedBatch is frozen.")
        if self._filled[index]:
            raise RuntimeError(f"Batch slot {index} was already written.")
        if example.input_ids.shape[0] != self.seq_len:
            raise ValueError(
                f"Example length {example.input_ids.shape[0]} does not match {self.seq_len}."
            )
        self.input_ids[index] = example.input_ids
        self.attention_mask[index] = example.attention_mask
        self.token_type_ids[index] = example.token_type_ids
        self._filled[index] = True

    def freeze(self) -> "EncodedBatch":
        for array in (self.input_ids, self.attention_mask, self.token_type_ids):
            array.flags.writeable = False
        return self

    @property
    def flat_input_ids(self) -> np.ndarray:
        return self.input_ids.reshape(-1)

    @property
    def flat_attention_mask(self) -> np.ndarray:
        return self.attention_mask.reshape(-1)

    @property
    def flat_token_type_ids(self) -> np.ndarray:
        return self.token_type_ids.reshape(-1)


class PairEncoder:
    def __init__(self, tokenizer: TokenizerLike, max_sequence_length: int) -> None:
        if max_sequence_length < SPECIAL_TOKEN_COUNT + 1:
            raise InvalidArgumentError(
                f"max_sequence_length must be >= {SPECIAL_TOKEN_COUNT + 1}, "
                f"got {max_sequence_length}."
            )
        self._tokenizer = tokenizer
        self.max_sequence_length = max_sequence_length

    def encode_pair(self, query: str, document: str) -> EncodedExample:
        query_ids = self._tokenize(query)
        document_ids = self._tokenize(document)
        query_ids, document_ids = truncate_pair(
            query_ids, document_ids, self.max_sequence_length - SPECIAL_TOKEN_COUNT
        )

        cls_id = self._tokenizer.cls_token_id
        sep_id = self._tokenizer.sep_token_id
        pad_id = self._tokenizer.pad_token_id

        first_segment = [cls_id, *query_ids, sep_id]
        second_segment = [*document_ids, sep_id]
        content = first_segment + second_segment
        length = len(content)
        padding = self.max_sequence_length - length

        input_ids = np.array(content + [pad_id] * padding, dtype=np.int64)
        attention_mask = np.array([1] * length + [0] * padding, dtype=np.int64)
        token_type_ids = np.array(
            [0] * len(first_segment) + [1] * len(second_segment) + [0] * padding,
            dtype=np.int64,
        )
        for array in (input_ids, attention_mask, token_type_ids):
            array.flags.writeable = False
        return EncodedExample(input_ids, attention_mask, token_type_ids, length)

    def encode_batch(self, query: str, documents: Sequence[str]) -> EncodedBatch:
        batch = EncodedBatch(len(documents), self.max_sequence_length)
        for index, document in enumerate(documents):
            batch.set_example(index, self.encode_pair(query, document))
        return batch.freeze()

    def _tokenize(self, text: str) -> list[int]:
        try:
            return list(self._tokenizer.encode_to_ids(text))
        except TokenizationError:
            raise
        except Exception as exc:
            raise TokenizationError("Failed to tokenize input.", text) from exc


def truncate_pair(
    query_ids: Sequence[int], document_ids: Sequence[int], available: int
) -> tuple[list[int], list[int]]:
    """Fit both sequences into ``available`` slots, favouring the query."""
    query = list(query_ids)
    document = list(document_ids)
    if len(query) + len(document) <= available:
        return query, document
    query = query[: min(len(query), available // 2)]
    document = document[: available - len(query)]
    return query, document


__all__ = [
    "EncodedBatch",
    "EncodedExample",
    "PairEncoder",
    "SPECIAL_TOKEN_COUNT",
    "truncate_pair",
]
