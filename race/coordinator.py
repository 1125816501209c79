"""Per-material lifecycle, single-flight initialization and question answering."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import numpy as np

from .chunking import TextChunker
from .config import config
from .context import ContextAssembler
from .embeddings import EmbeddingService
from .errors import (
    NotInitializedError,
    ProviderError,
    RateLimitError,
    ValidationError,
)
from .generation import AnswerGenerator, HistoryItem
from .models import (
    AnswerResult,
    Chunk,
    LanguageVariant,
    MaterialIndex,
    MaterialState,
    content_hash,
)
from .retrieval import Retriever
from .speech import SpeechSynthesizer
from .vector_index import IndexKey, VectorIndex

logger = config.get_logger(__name__)

CANNOT_ANSWER = "I cannot answer this question based on the provided content."
DEGRADED_ANSWER = (
    "I apologize, but I encountered an error while processing your question. "
    "Please try again."
)


@dataclass
class _Flight:
    """An initialization currently running for one key."""

    content_hash: str
    done: threading.Event = field(default_factory=threading.Event)
    result: MaterialIndex | None = None
    error: BaseException | None = None
    cancelled: bool = False


def _coerce_variant(variant: LanguageVariant | str) -> LanguageVariant:
    try:
        return LanguageVariant(variant)
    except ValueError as exc:
        msg = f"Unknown language variant: {variant!r}"
        raise ValidationError(msg) from exc


def _require_material_id(material_id: str) -> str:
    if not isinstance(material_id, str) or not material_id.strip():
        msg = "material_id is required"
        raise ValidationError(msg)
    return material_id


class SessionCoordinator:
    """Keeps material indexes ready and answers questions against them.

    At most one initialization runs per (material, variant) at a time;
    concurrent callers wait for it and share its outcome. Questions are
    answered against the index snapshot present when they start.
    """

    # Evicted keys remembered for state(); oldest are forgotten first.
    max_evicted = 256

    def __init__(  # noqa: PLR0913
        self,
        embedding_service: EmbeddingService,
        generator: AnswerGenerator,
        *,
        index: VectorIndex | None = None,
        chunker: TextChunker | None = None,
        retriever: Retriever | None = None,
        assembler: ContextAssembler | None = None,
        speech: SpeechSynthesizer | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
        max_retry_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.embedding_service = embedding_service
        self.generator = generator
        self.index = index if index is not None else VectorIndex()
        self.chunker = chunker or TextChunker()
        self.retriever = retriever or Retriever()
        self.assembler = assembler or ContextAssembler()
        self.speech = speech
        self.max_retries = (
            max_retries if max_retries is not None else config.EMBEDDING_MAX_RETRIES
        )
        self.retry_backoff = (
            retry_backoff
            if retry_backoff is not None
            else config.EMBEDDING_RETRY_BACKOFF
        )
        self.max_retry_delay = (
            max_retry_delay
            if max_retry_delay is not None
            else config.EMBEDDING_MAX_RETRY_DELAY
        )
        self._sleep = sleep
        self._lock = threading.Lock()
        self._inflight: dict[IndexKey, _Flight] = {}
        self._evicted: OrderedDict[IndexKey, None] = OrderedDict()

    # Lifecycle

    def state(
        self, material_id: str, variant: LanguageVariant | str
    ) -> MaterialState:
        """Report the lifecycle state of a (material, variant)."""
        key = (material_id, _coerce_variant(variant))
        with self._lock:
            if key in self._inflight:
                return MaterialState.INITIALIZING
            if key in self.index:
                return MaterialState.READY
            if key in self._evicted:
                return MaterialState.EVICTED
        return MaterialState.UNINITIALIZED

    def ensure_ready(
        self,
        material_id: str,
        variant: LanguageVariant | str,
        content: str,
    ) -> MaterialIndex:
        """Make sure an index built from ``content`` is published.

        No work is done when the published index already has the same content
        hash. Otherwise one caller chunks and embeds the content while any
        concurrent caller for the same key waits for that run.

        Returns:
            The ready index.

        Raises:
            ValidationError: If the id or content is empty.
            ProviderError: If embedding fails; nothing is published.
        """
        material_id = _require_material_id(material_id)
        variant = _coerce_variant(variant)
        if not content or not content.strip():
            msg = f"Material {material_id!r} has no content to index"
            raise ValidationError(msg)

        digest = content_hash(content)
        key = (material_id, variant)

        while True:
            with self._lock:
                current = self.index.get(material_id, variant)
                if current is not None and current.content_hash == digest:
                    return current
                flight = self._inflight.get(key)
                owner = flight is None
                if flight is None:
                    flight = _Flight(content_hash=digest)
                    self._inflight[key] = flight

            if owner:
                return self._initialize(key, flight, content)

            logger.debug(
                "Waiting for in-flight initialization of %s (%s)",
                material_id,
                variant.value,
            )
            flight.done.wait()
            if flight.content_hash != digest:
                continue
            if flight.error is not None:
                raise flight.error
            if flight.result is not None:
                return flight.result

    def evict(self, material_id: str) -> None:
        """Drop every variant of a material. Safe in any state.

        An initialization already running for the material finishes but its
        result is not published, and a later ensure_ready starts a new one.
        """
        with self._lock:
            known = {key for key in self.index.keys() if key[0] == material_id}
            removed = self.index.evict(material_id)
            for key in [key for key in self._inflight if key[0] == material_id]:
                self._inflight.pop(key).cancelled = True
                known.add(key)
            for key in known:
                self._evicted[key] = None
                self._evicted.move_to_end(key)
            while len(self._evicted) > self.max_evicted:
                self._evicted.popitem(last=False)
        logger.info("Material %s evicted (%d index(es) dropped)", material_id, removed)

    def _initialize(
        self, key: IndexKey, flight: _Flight, content: str
    ) -> MaterialIndex:
        material_id, variant = key
        started = time.monotonic()
        try:
            texts = self.chunker.split_text(content)
            embeddings = self._embed_with_retry(texts)
            chunks = [
                Chunk(text=text, embedding=embedding, ordinal=ordinal)
                for ordinal, (text, embedding) in enumerate(
                    zip(texts, embeddings, strict=True)
                )
            ]
            index = MaterialIndex(
                material_id=material_id,
                variant=variant,
                chunks=tuple(chunks),
                content_hash=flight.content_hash,
            )
            with self._lock:
                if flight.cancelled:
                    logger.warning(
                        "Material %s (%s) was evicted during initialization; "
                        "result not published",
                        material_id,
                        variant.value,
                    )
                else:
                    self.index.publish(index)
                    self._evicted.pop(key, None)
            flight.result = index
        except BaseException as exc:
            flight.error = exc
            logger.warning(
                "Initialization of %s (%s) failed: %s",
                material_id,
                variant.value,
                type(exc).__name__,
            )
            raise
        else:
            logger.info(
                "Initialized %s (%s) with %d chunks in %.2fs",
                material_id,
                variant.value,
                len(index),
                time.monotonic() - started,
            )
            return index
        finally:
            with self._lock:
                if self._inflight.get(key) is flight:
                    del self._inflight[key]
            flight.done.set()

    def _embed_with_retry(self, texts: list[str]) -> list[np.ndarray]:
        attempt = 0
        while True:
            try:
                return self.embedding_service.embed(texts)
            except RateLimitError as exc:
                if attempt >= self.max_retries:
                    raise
                delay = (
                    exc.retry_after
                    if exc.retry_after is not None
                    else self.retry_backoff * 2**attempt
                )
                delay = min(delay, self.max_retry_delay)
                attempt += 1
                logger.warning(
                    "Embedding rate limited; retry %d/%d in %.1fs",
                    attempt,
                    self.max_retries,
                    delay,
                )
                self._sleep(delay)

    # Questions

    def answer_question(
        self,
        material_id: str,
        variant: LanguageVariant | str,
        question: str,
        history: Iterable[HistoryItem] | None = None,
        *,
        with_audio: bool = False,
    ) -> AnswerResult:
        """Answer a question from a ready material.

        Returns:
            AnswerResult with references in ranked order. When no chunk is
            relevant the answer is CANNOT_ANSWER, references are empty and the
            completion provider is not called.

        Raises:
            ValidationError: If the question is empty.
            NotInitializedError: If ensure_ready has not published an index.
            ProviderError: If embedding the question or generation fails.
        """
        material_id = _require_material_id(material_id)
        variant = _coerce_variant(variant)
        question = (question or "").strip()
        if not question:
            msg = "Question is required"
            raise ValidationError(msg)

        index = self.index.get(material_id, variant)
        if index is None:
            raise NotInitializedError(material_id, variant.value)

        query_embedding = self.embedding_service.embed_query(question)
        results = self.retriever.retrieve(query_embedding, index)
        context = self.assembler.assemble(results)

        if context.is_empty:
            logger.info(
                "No relevant content for question on %s (%s)",
                material_id,
                variant.value,
            )
            result = AnswerResult(answer=CANNOT_ANSWER, references=[])
        else:
            generated = self.generator.generate(
                question, context.text, history, variant
            )
            result = AnswerResult(
                answer=generated.answer, references=context.references
            )

        if with_audio:
            result.audio = self._synthesize(result.answer, variant)
        return result

    query = answer_question

    def safe_answer(
        self,
        material_id: str,
        variant: LanguageVariant | str,
        question: str,
        history: Iterable[HistoryItem] | None = None,
        *,
        with_audio: bool = False,
    ) -> AnswerResult:
        """Like answer_question, but provider failures become a degraded answer.

        Returns:
            The answer, or DEGRADED_ANSWER with no references.
        """
        try:
            return self.answer_question(
                material_id, variant, question, history, with_audio=with_audio
            )
        except ProviderError as exc:
            logger.error(  # noqa: TRY400
                "Answering on %s failed: %s (provider=%s, status=%s, key=%s)",
                material_id,
                exc.kind,
                exc.provider,
                exc.status_code,
                exc.key_hint,
            )
            return AnswerResult(answer=DEGRADED_ANSWER, references=[])

    def _synthesize(self, text: str, variant: LanguageVariant) -> bytes | None:
        if self.speech is None:
            return None
        try:
            return self.speech.synthesize(text, variant)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Speech synthesis failed; answering without audio", exc_info=True
            )
            return None


def build_coordinator(*, with_speech: bool = True) -> SessionCoordinator:
    """Wire a coordinator from configuration.

    Returns:
        SessionCoordinator backed by the configured providers.
    """
    return SessionCoordinator(
        EmbeddingService(),
        AnswerGenerator(),
        speech=SpeechSynthesizer() if with_speech else None,
    )
