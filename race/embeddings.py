"""OpenAI embeddings gateway."""

from collections.abc import Sequence

import numpy as np
import openai
from openai import OpenAI

from .config import config
from .errors import ProviderError, from_openai_error, mask_key

logger = config.get_logger(__name__)

PROVIDER_NAME = "embeddings"


class EmbeddingService:
    """Single-shot, batched access to the embedding provider.

    Each call to :meth:`embed` issues exactly one request. Retries are left to
    the caller, so the underlying client is built with ``max_retries=0``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            timeout: Request timeout in seconds. If None, uses
                config.PROVIDER_TIMEOUT.
            client: Pre-built client, mainly for tests.
        """
        self.api_key = api_key or config.get_openai_api_key()
        self.timeout = timeout if timeout is not None else config.PROVIDER_TIMEOUT
        default_headers = config.get_api_headers()
        self.client = client or OpenAI(
            api_key=self.api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            timeout=self.timeout,
            max_retries=0,
        )
        self.model = model or config.EMBEDDING_MODEL
        self.dimension: int | None = None

    def embed(self, texts: Sequence[str]) -> list[np.ndarray]:
        """Embed texts with one provider call, preserving order.

        Args:
            texts: Input texts.

        Returns:
            One embedding vector per input text, in input order.

        Raises:
            ProviderError: On upstream failure or malformed payload. The
                RateLimitError and ProviderTimeoutError subclasses are raised
                for HTTP 429 and timeouts respectively.
        """
        if not texts:
            return []

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=list(texts),
            )
        except openai.OpenAIError as exc:
            error = from_openai_error(
                exc, provider=PROVIDER_NAME, api_key=self.api_key
            )
            logger.exception(
                "Embedding request failed (%s, status=%s, key=%s)",
                error.kind,
                error.status_code,
                error.key_hint,
            )
            raise error from exc

        embeddings = self._parse(response, expected=len(texts))
        logger.info(
            "Generated %d embeddings (dim=%d)", len(embeddings), self.dimension or 0
        )
        return embeddings

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a single text.

        Returns:
            np.ndarray: The embedding vector for the input text.
        """
        return self.embed([text])[0]

    def _malformed(self, detail: str) -> ProviderError:
        logger.error("Malformed embedding payload: %s", detail)
        return ProviderError(
            f"Malformed embedding payload: {detail}",
            provider=PROVIDER_NAME,
            key_hint=mask_key(self.api_key),
        )

    def _parse(self, response: object, expected: int) -> list[np.ndarray]:
        data = getattr(response, "data", None)
        if data is None or len(data) != expected:
            got = "no data" if data is None else f"{len(data)} vectors"
            msg = f"expected {expected} vectors, got {got}"
            raise self._malformed(msg)

        embeddings: list[np.ndarray] = []
        for item in data:
            try:
                vector = np.asarray(item.embedding, dtype=np.float64)
            except (TypeError, ValueError) as exc:
                raise self._malformed("non-numeric embedding") from exc
            if vector.ndim != 1 or vector.shape[0] == 0:
                msg = f"embedding has shape {vector.shape}"
                raise self._malformed(msg)
            if not np.all(np.isfinite(vector)):
                raise self._malformed("embedding contains non-finite values")
            embeddings.append(vector)

        dimensions = {vector.shape[0] for vector in embeddings}
        if len(dimensions) != 1:
            msg = f"ragged embeddings with dimensions {sorted(dimensions)}"
            raise self._malformed(msg)
        dimension = dimensions.pop()
        if self.dimension is None:
            self.dimension = dimension
        elif dimension != self.dimension:
            msg = f"dimension changed from {self.dimension} to {dimension}"
            raise self._malformed(msg)

        return embeddings
