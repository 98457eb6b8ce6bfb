from __future__ import annotations

import numpy as np
import pytest

from core.errors import InvalidArgumentError, TokenizationError
from retrieval.rerankers.encoding import PairEncoder, truncate_pair


def test_short_pair_layout(fake_tokenizer) -> None:
    encoder = PairEncoder(fake_tokenizer, 10)
    example = encoder.encode_pair("a bb", "ccc")

    assert example.input_ids.tolist() == [101, 1001, 1002, 102, 1003, 102, 0, 0, 0, 0]
    assert example.attention_mask.tolist() == [1, 1, 1, 1, 1, 1, 0, 0, 0, 0]
    assert example.token_type_ids.tolist() == [0, 0, 0, 0, 1, 1, 0, 0, 0, 0]
    assert example.length == 6
    assert example.input_ids.dtype == np.int64


def test_encoded_arrays_are_read_only(fake_tokenizer) -> None:
    example = PairEncoder(fake_tokenizer, 8).encode_pair("a", "b")
    with pytest.raises(ValueError):
        example.input_ids[0] = 5


def test_long_pair_is_truncated_query_first(fake_tokenizer) -> None:
    encoder = PairEncoder(fake_tokenizer, 10)
    query = " ".join(["q"] * 6)
    document = " ".join(["dd"] * 6)

    example = encoder.encode_pair(query, document)

    # available = 7: query keeps 3, document fills the remaining 4
    assert example.length == 10
    assert example.input_ids.tolist() == [101, 1001, 1001, 1001, 102, 1002, 1002, 1002, 1002, 102]
    assert example.token_type_ids.tolist() == [0, 0, 0, 0, 0, 1, 1, 1, 1, 1]
    assert example.attention_mask.sum() == 10


def test_short_query_leaves_room_for_document() -> None:
    query, document = truncate_pair([1], list(range(20)), 7)
    assert query == [1]
    assert document == list(range(6))


def test_fitting_pair_is_untouched() -> None:
    assert truncate_pair([1, 2], [3], 7) == ([1, 2], [3])


def test_batch_shapes_and_independence(fake_tokenizer) -> None:
    encoder = PairEncoder(fake_tokenizer, 12)
    documents = ["one", "two words", "three little words"]

    batch = encoder.encode_batch("query", documents)

    assert batch.input_ids.shape == (3, 12)
    assert batch.flat_input_ids.shape == (36,)
    for index, document in enumerate(documents):
        single = encoder.encode_pair("query", document)
        assert batch.input_ids[index].tolist() == single.input_ids.tolist()
        assert batch.token_type_ids[index].tolist() == single.token_type_ids.tolist()
    assert not batch.input_ids.flags.writeable


def test_frozen_batch_rejects_writes(fake_tokenizer) -> None:
    encoder = PairEncoder(fake_tokenizer, 8)
    batch = encoder.encode_batch("q", ["d"])
    with pytest.raises(RuntimeError):
        batch.set_example(0, encoder.encode_pair("q", "d"))


def test_minimum_sequence_length(fake_tokenizer) -> None:
    with pytest.raises(InvalidArgumentError):
        PairEncoder(fake_tokenizer, 3)
    example = PairEncoder(fake_tokenizer, 4).encode_pair("long query here", "and document")
    assert example.length == 4
    assert example.input_ids.tolist() == [101, 102, 1003, 102]


def test_tokenizer_failure_is_wrapped(fake_tokenizer) -> None:
    class Broken:
        cls_token_id, sep_token_id, pad_token_id = 101, 102, 0

        def encode_to_ids(self, text: str):
            raise RuntimeError("vocab missing")

        def close(self) -> None:
            pass

    with pytest.raises(TokenizationError) as info:
        PairEncoder(Broken(), 16).encode_pair("x" * 150, "doc")
    assert info.value.input_preview == "x" * 100 + "..."
