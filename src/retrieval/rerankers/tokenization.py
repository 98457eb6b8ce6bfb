"""WordPiece tokenizer collaborator backed by ``transformers`` fast tokenizers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Tuple

from transformers import BertTokenizerFast, PreTrainedTokenizerFast

from core.errors import TokenizationError

logger = logging.getLogger(__name__)

DEFAULT_CLS_ID = 101
DEFAULT_SEP_ID = 102
DEFAULT_PAD_ID = 0


class WordPieceTokenizer:
    """Map raw text to vocabulary ids without adding special tokens.

    Special ids are discovered from the tokenizer's ``added_tokens`` and fall
    back to the conventional BERT values when lookup fails.
    """

    def __init__(
        self,
        backend: Any,
        *,
        cls_token_id: int = DEFAULT_CLS_ID,
        sep_token_id: int = DEFAULT_SEP_ID,
        pad_token_id: int = DEFAULT_PAD_ID,
    ) -> None:
        self._backend = backend
        self.cls_token_id = cls_token_id
        self.sep_token_id = sep_token_id
        self.pad_token_id = pad_token_id

    @classmethod
    def from_file(cls, tokenizer_path: str | Path) -> "WordPieceTokenizer":
        path = Path(tokenizer_path)
        if not path.is_file():
            raise FileNotFoundError(f"Tokenizer file not found: {path}")
        vocab_path = path.parent / "vocab.txt"
        try:
            if vocab_path.is_file():
                backend = BertTokenizerFast(vocab_file=str(vocab_path))
            else:
                backend = PreTrainedTokenizerFast(tokenizer_file=str(path))
        except Exception as exc:
            raise TokenizationError(f"Failed to load tokenizer from {path}") from exc
        cls_id, sep_id, pad_id = special_token_ids(path)
        logger.debug(
            "Loaded tokenizer %s (cls=%d, sep=%d, pad=%d)", path, cls_id, sep_id, pad_id
        )
        return cls(backend, cls_token_id=cls_id, sep_token_id=sep_id, pad_token_id=pad_id)

    def encode_to_ids(self, text: str) -> List[int]:
        try:
            ids = self._backend.encode(text, add_special_tokens=False)
        except Exception as exc:
            raise TokenizationError("Failed to tokenize input.", text) from exc
        return [int(token_id) for token_id in ids]

    def close(self) -> None:
        self._backend = None


def special_token_ids(tokenizer_path: str | Path) -> Tuple[int, int, int]:
    """Return (cls, sep, pad) ids from a tokenizer.json, defaulting to BERT values."""
    cls_id, sep_id, pad_id = DEFAULT_CLS_ID, DEFAULT_SEP_ID, DEFAULT_PAD_ID
    try:
        payload = json.loads(Path(tokenizer_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Using default special token ids for %s: %s", tokenizer_path, exc)
        return cls_id, sep_id, pad_id
    added = payload.get("added_tokens") if isinstance(payload, dict) else None
    for token in added or []:
        if not isinstance(token, dict):
            continue
        content = token.get("content")
        token_id = token.get("id")
        if not isinstance(token_id, int):
            continue
        if content == "[CLS]":
            cls_id = token_id
        elif content == "[SEP]":
            sep_id = token_id
        elif content == "[PAD]":
            pad_id = token_id
    return cls_id, sep_id, pad_id


__all__ = [
    "DEFAULT_CLS_ID",
    "DEFAULT_PAD_ID",
    "DEFAULT_SEP_ID",
    "WordPieceTokenizer",
    "special_token_ids",
]
