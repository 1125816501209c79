"""RACE - Retrieval-Augmented Context Engine for study materials."""

from .chunking import TextChunker
from .context import NO_RELEVANT_CONTEXT, ContextAssembler
from .coordinator import (
    CANNOT_ANSWER,
    DEGRADED_ANSWER,
    SessionCoordinator,
    build_coordinator,
)
from .embeddings import EmbeddingService
from .errors import (
    NotInitializedError,
    ProviderError,
    ProviderTimeoutError,
    RACEError,
    RateLimitError,
    ValidationError,
)
from .generation import AnswerGenerator
from .models import (
    AnswerResult,
    Chunk,
    ConversationTurn,
    LanguageVariant,
    MaterialIndex,
    MaterialState,
    Reference,
    RetrievalResult,
)
from .retrieval import Retriever, cosine_similarity
from .speech import SpeechSynthesizer
from .vector_index import VectorIndex

__all__ = [
    "CANNOT_ANSWER",
    "DEGRADED_ANSWER",
    "NO_RELEVANT_CONTEXT",
    "AnswerGenerator",
    "AnswerResult",
    "Chunk",
    "ContextAssembler",
    "ConversationTurn",
    "EmbeddingService",
    "LanguageVariant",
    "MaterialIndex",
    "MaterialState",
    "NotInitializedError",
    "ProviderError",
    "ProviderTimeoutError",
    "RACEError",
    "RateLimitError",
    "Reference",
    "RetrievalResult",
    "Retriever",
    "SessionCoordinator",
    "SpeechSynthesizer",
    "TextChunker",
    "ValidationError",
    "VectorIndex",
    "build_coordinator",
    "cosine_similarity",
]
