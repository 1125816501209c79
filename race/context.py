"""Rendering of ranked chunks into a numbered prompt context."""

from collections.abc import Sequence

from .config import config
from .models import AssembledContext, Reference, RetrievalResult

logger = config.get_logger(__name__)

NO_RELEVANT_CONTEXT = "[no relevant content]"
BLOCK_SEPARATOR = "\n\n"
ELLIPSIS = "…"


def make_excerpt(text: str, max_chars: int) -> str:
    """Cut text to ``max_chars``, marking the cut with an ellipsis.

    Returns:
        The excerpt.
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


class ContextAssembler:
    """Builds the context block and the reference list for an answer."""

    def __init__(
        self,
        excerpt_chars: int | None = None,
        max_context_chars: int | None = None,
    ) -> None:
        """Initialize the ContextAssembler.

        Args:
            excerpt_chars: Reference excerpt length. If None, uses
                config.REFERENCE_EXCERPT_CHARS.
            max_context_chars: Budget for the rendered context. If None, uses
                config.CONTEXT_MAX_CHARS. Zero disables the budget.
        """
        self.excerpt_chars = (
            excerpt_chars
            if excerpt_chars is not None
            else config.REFERENCE_EXCERPT_CHARS
        )
        self.max_context_chars = (
            max_context_chars
            if max_context_chars is not None
            else config.CONTEXT_MAX_CHARS
        )

    def assemble(self, results: Sequence[RetrievalResult]) -> AssembledContext:
        """Render ranked results as ``[n] text`` blocks.

        The top block is always kept; lower-ranked blocks that would push the
        context past the budget are dropped along with their references.

        Returns:
            AssembledContext. When ``results`` is empty, its text is
            NO_RELEVANT_CONTEXT and ``is_empty`` is True.
        """
        if not results:
            return AssembledContext(
                text=NO_RELEVANT_CONTEXT, references=[], is_empty=True
            )

        blocks: list[str] = []
        references: list[Reference] = []
        length = 0
        for result in results:
            block = f"[{len(blocks) + 1}] {result.chunk.text}"
            added = len(block) + (len(BLOCK_SEPARATOR) if blocks else 0)
            over_budget = (
                self.max_context_chars > 0
                and length + added > self.max_context_chars
            )
            if blocks and over_budget:
                logger.info(
                    "Context budget of %d chars reached; dropped %d result(s)",
                    self.max_context_chars,
                    len(results) - len(blocks),
                )
                break
            blocks.append(block)
            length += added
            references.append(
                Reference(
                    ordinal=result.chunk.ordinal,
                    score=result.score,
                    excerpt=make_excerpt(result.chunk.text, self.excerpt_chars),
                )
            )

        return AssembledContext(
            text=BLOCK_SEPARATOR.join(blocks), references=references, is_empty=False
        )
