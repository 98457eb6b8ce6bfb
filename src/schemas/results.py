"""Result records returned by the reranker."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ScoredCandidate(BaseModel):
    """A document with its relevance score and position in the caller's input.

    Candidates order by score descending, so ``sorted()`` puts the most
    relevant first; equal scores keep their input order because the sort is
    stable.
    """

    original_index: int = Field(ge=0)
    score: float = Field(ge=0.0, le=1.0)
    document: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __lt__(self, other: "ScoredCandidate") -> bool:
        if not isinstance(other, ScoredCandidate):
            return NotImplemented
        return self.score > other.score

    def __str__(self) -> str:
        preview = self.document if len(self.document) <= 50 else self.document[:50] + "..."
        return f"[{self.score:.4f}] #{self.original_index}: {preview}"


__all__ = ["ScoredCandidate"]
