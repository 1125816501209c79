"""Sentence-respecting text chunking."""

import re

from .config import config
from .errors import ValidationError

logger = config.get_logger(__name__)

# Terminal punctuation (including the Arabic question mark) followed by whitespace.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.?!؟])\s+")


class TextChunker:
    """Greedily packs whole sentences into chunks of bounded length."""

    def __init__(self, max_len: int | None = None) -> None:
        """Initialize the TextChunker.

        Args:
            max_len: Soft upper bound on chunk length in characters. If None,
                uses config.CHUNK_MAX_LENGTH.

        Raises:
            ValidationError: If max_len is smaller than one character.
        """
        if max_len is None:
            max_len = config.CHUNK_MAX_LENGTH
        if max_len < 1:
            msg = f"max_len must be positive, got {max_len}"
            raise ValidationError(msg)
        self.max_len = max_len

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split text on sentence boundaries, dropping empty pieces.

        Returns:
            Stripped sentences in document order.
        """
        return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]

    def split_text(self, text: str, max_len: int | None = None) -> list[str]:
        """Split text into ordered chunks no longer than ``max_len``.

        A sentence that alone exceeds the bound is emitted verbatim as its own
        chunk instead of being truncated.

        Returns:
            Non-empty chunk texts in document order.

        Raises:
            ValidationError: If max_len is smaller than one character.
        """
        limit = self.max_len if max_len is None else max_len
        if limit < 1:
            msg = f"max_len must be positive, got {limit}"
            raise ValidationError(msg)

        chunks: list[str] = []
        buffer = ""
        for sentence in self.split_sentences(text):
            candidate = f"{buffer} {sentence}" if buffer else sentence
            if buffer and len(candidate) > limit:
                chunks.append(buffer)
                buffer = sentence
            else:
                buffer = candidate
        if buffer:
            chunks.append(buffer)

        logger.debug("Text split into %d chunks (max_len=%d)", len(chunks), limit)
        return chunks
