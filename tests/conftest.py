"""Test configuration and fixtures for RACE tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- Provider fixtures
- Index and coordinator factories
"""

import hashlib
import threading
import time
from collections.abc import Sequence
from unittest.mock import Mock, create_autospec, patch

import numpy as np
import pytest

from race import (
    AnswerGenerator,
    AnswerResult,
    Chunk,
    EmbeddingService,
    LanguageVariant,
    MaterialIndex,
    SessionCoordinator,
)
from race.models import content_hash


class TestConstants:
    """Centralized test constants shared across the suite."""

    __test__ = False

    TEST_API_KEY = "test-key-1234"
    TEST_EMBEDDING_MODEL = "text-embedding-ada-002"
    DEFAULT_EMBEDDING_DIMENSION = 384

    MATERIAL_ID = "material-1"
    OTHER_MATERIAL_ID = "material-2"

    MATERIAL_TEXT = (
        "Photosynthesis converts light energy into chemical energy. "
        "It takes place in the chloroplasts of plant cells. "
        "The Calvin cycle fixes carbon dioxide into sugars. "
        "Cellular respiration releases the energy stored in glucose. "
        "Mitochondria are the site of aerobic respiration."
    )
    TRANSLATED_TEXT = (
        "La photosynthèse convertit l'énergie lumineuse en énergie chimique. "
        "Elle a lieu dans les chloroplastes des cellules végétales."
    )
    UPDATED_TEXT = (
        "Plate tectonics describes the motion of the lithosphere. "
        "Earthquakes occur along plate boundaries."
    )


def unit(values: Sequence[float]) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    return vector / np.linalg.norm(vector)


class MockEmbeddingService:
    """Deterministic stand-in for EmbeddingService.

    Vectors are seeded from a hash of the text, so unrelated texts are nearly
    orthogonal. ``aliases`` maps a text onto another one so a question can be
    made to embed exactly like a chunk.
    """

    def __init__(  # noqa: PLR0913
        self,
        dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION,
        aliases: dict[str, str] | None = None,
        delay: float = 0.0,
        gate: threading.Event | None = None,
        errors: Sequence[BaseException | None] | None = None,
    ) -> None:
        self.dimension = dimension
        self.aliases = dict(aliases or {})
        self.delay = delay
        self.gate = gate
        self.errors = list(errors or [])
        self.batch_calls: list[list[str]] = []
        self.query_calls: list[str] = []
        self.batch_started = threading.Event()
        self._lock = threading.Lock()

    def vector(self, text: str) -> np.ndarray:
        text = self.aliases.get(text, text)
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return embedding / np.linalg.norm(embedding)

    def embed(self, texts: Sequence[str]) -> list[np.ndarray]:
        with self._lock:
            self.batch_calls.append(list(texts))
            error = self.errors.pop(0) if self.errors else None
        self.batch_started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        if error is not None:
            raise error
        return [self.vector(text) for text in texts]

    def embed_query(self, text: str) -> np.ndarray:
        with self._lock:
            self.query_calls.append(text)
        return self.vector(text)


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response."""
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response."""
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def make_index(
    embeddings: Sequence[Sequence[float]],
    texts: Sequence[str] | None = None,
    material_id: str = TestConstants.MATERIAL_ID,
    variant: LanguageVariant = LanguageVariant.ORIGINAL,
) -> MaterialIndex:
    """Build a MaterialIndex directly from vectors."""
    if texts is None:
        texts = [f"Chunk number {i}." for i in range(len(embeddings))]
    chunks = tuple(
        Chunk(text=text, embedding=np.asarray(emb, dtype=np.float64), ordinal=i)
        for i, (text, emb) in enumerate(zip(texts, embeddings, strict=True))
    )
    return MaterialIndex(
        material_id=material_id,
        variant=variant,
        chunks=chunks,
        content_hash=content_hash(" ".join(texts)),
    )


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch the OpenAI embeddings.create method."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service():
    """EmbeddingService with a test API key."""
    return EmbeddingService(api_key=TestConstants.TEST_API_KEY)


@pytest.fixture
def answer_generator():
    """AnswerGenerator with a test API key."""
    return AnswerGenerator(api_key=TestConstants.TEST_API_KEY)


@pytest.fixture
def chat_api_mock(answer_generator):
    """Patch chat.completions.create on the generator's client."""
    with patch.object(
        answer_generator.client.chat.completions,
        "create",
        return_value=create_mock_chat_response("Generated answer"),
    ) as mock_create:
        yield mock_create


@pytest.fixture
def mock_embedding_service():
    """Fresh MockEmbeddingService per test (it records calls)."""
    return MockEmbeddingService()


@pytest.fixture
def mock_generator():
    """Autospecced AnswerGenerator returning a fixed answer."""
    generator = create_autospec(AnswerGenerator, instance=True)
    generator.generate.return_value = AnswerResult(answer="Generated answer")
    return generator


@pytest.fixture
def coordinator_factory(mock_generator):
    """Factory for SessionCoordinator instances wired to mocks."""

    def _create_coordinator(
        embedding_service: MockEmbeddingService | None = None,
        **kwargs,
    ) -> SessionCoordinator:
        kwargs.setdefault("sleep", Mock())
        return SessionCoordinator(
            embedding_service or MockEmbeddingService(),
            kwargs.pop("generator", mock_generator),
            **kwargs,
        )

    return _create_coordinator


@pytest.fixture
def coordinator(coordinator_factory, mock_embedding_service):
    """Coordinator using the shared mock embedding service."""
    return coordinator_factory(mock_embedding_service)
