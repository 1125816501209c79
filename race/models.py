"""Data models for the retrieval engine."""

from __future__ import annotations

import datetime
import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Literal

import numpy as np

Role = Literal["user", "assistant"]
VALID_ROLES: frozenset[str] = frozenset({"user", "assistant"})


class LanguageVariant(str, Enum):
    """Which text of a material an index was built from."""

    ORIGINAL = "original"
    TRANSLATED = "translated"


class MaterialState(str, Enum):
    """Lifecycle state of one (material, variant) pair."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    EVICTED = "evicted"


def content_hash(text: str) -> str:
    """Digest used to detect whether a material's text changed.

    Returns:
        Hex SHA-256 of the UTF-8 encoded text.
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True, eq=False)
class Chunk:
    """One bounded span of source text and its embedding."""

    text: str
    embedding: np.ndarray
    ordinal: int


@dataclass(frozen=True, eq=False)
class MaterialIndex:
    """Fully embedded, immutable retrieval state for a (material, variant)."""

    material_id: str
    variant: LanguageVariant
    chunks: tuple[Chunk, ...]
    content_hash: str
    initialized_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(tz=datetime.UTC)
    )

    @property
    def key(self) -> tuple[str, LanguageVariant]:
        return (self.material_id, self.variant)

    @property
    def dimension(self) -> int:
        if not self.chunks:
            return 0
        return int(self.chunks[0].embedding.shape[0])

    @cached_property
    def embedding_matrix(self) -> np.ndarray:
        """Row-stacked chunk embeddings in ordinal order."""
        if not self.chunks:
            return np.empty((0, 0), dtype=np.float64)
        return np.vstack([chunk.embedding for chunk in self.chunks]).astype(
            np.float64
        )

    def __len__(self) -> int:
        return len(self.chunks)


@dataclass(frozen=True)
class RetrievalResult:
    """A chunk and its similarity to the question."""

    chunk: Chunk
    score: float


@dataclass(frozen=True)
class Reference:
    """Traceable pointer from an answer back to a source chunk."""

    ordinal: int
    score: float
    excerpt: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.ordinal, "score": self.score, "text": self.excerpt}


@dataclass(frozen=True)
class AssembledContext:
    """Prompt context rendered from ranked chunks."""

    text: str
    references: list[Reference]
    is_empty: bool


@dataclass(frozen=True)
class ConversationTurn:
    """Represents a single turn of prior conversation."""

    role: Role
    content: str

    @classmethod
    def coerce(
        cls, value: ConversationTurn | Mapping[str, Any]
    ) -> ConversationTurn | None:
        """Build a turn from a stored message mapping.

        Returns:
            The turn, or None when the role is unknown or the content is empty.
        """
        if isinstance(value, ConversationTurn):
            role, content = value.role, value.content
        else:
            role = str(value.get("role", "")).lower()
            content = value.get("content") or ""
        if role not in VALID_ROLES or not str(content).strip():
            return None
        return cls(role=role, content=str(content))  # type: ignore[arg-type]

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class AnswerResult:
    """Answer text plus the references it was grounded on."""

    answer: str
    references: list[Reference] = field(default_factory=list)
    audio: bytes | None = None
