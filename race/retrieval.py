"""Cosine-similarity ranking of a material's chunks."""

import numpy as np

from .config import config
from .errors import ValidationError
from .models import MaterialIndex, RetrievalResult

logger = config.get_logger(__name__)

EPSILON = 1e-9


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine of the angle between two vectors.

    A zero-norm input yields 0.0 instead of dividing by zero.

    Returns:
        Similarity in [-1, 1].
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    denominator = float(np.linalg.norm(a) * np.linalg.norm(b)) or EPSILON
    return float(np.dot(a, b) / denominator)


class Retriever:
    """Scores every chunk of an index and keeps the best ones above a threshold."""

    def __init__(
        self, top_k: int | None = None, threshold: float | None = None
    ) -> None:
        """Initialize the Retriever.

        Args:
            top_k: Maximum number of results. If None, uses config.RETRIEVAL_TOP_K.
            threshold: Scores must be strictly greater than this. If None,
                uses config.RETRIEVAL_THRESHOLD.
        """
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.threshold = (
            threshold if threshold is not None else config.RETRIEVAL_THRESHOLD
        )

    @staticmethod
    def score(query_embedding: np.ndarray, index: MaterialIndex) -> np.ndarray:
        """Cosine similarity of the query against every chunk, in ordinal order.

        Raises:
            ValidationError: If the query dimension differs from the index.
        """
        query = np.asarray(query_embedding, dtype=np.float64).reshape(-1)
        matrix = index.embedding_matrix
        if matrix.shape[1] != query.shape[0]:
            msg = (
                f"Query embedding dimension {query.shape[0]} does not match "
                f"index dimension {matrix.shape[1]}"
            )
            raise ValidationError(msg)

        denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        denominators[denominators == 0] = EPSILON
        return (matrix @ query) / denominators

    def retrieve(
        self,
        query_embedding: np.ndarray,
        index: MaterialIndex,
        k: int | None = None,
        threshold: float | None = None,
    ) -> list[RetrievalResult]:
        """Rank chunks by similarity to the query.

        Ties are broken by ordinal so the output is reproducible.

        Returns:
            At most ``k`` results with ``score > threshold``, best first. Empty
            when nothing is relevant.

        Raises:
            ValidationError: If k is smaller than one or dimensions differ.
        """
        k = self.top_k if k is None else k
        threshold = self.threshold if threshold is None else threshold
        if k < 1:
            msg = f"k must be positive, got {k}"
            raise ValidationError(msg)
        if not index.chunks:
            return []

        scores = self.score(query_embedding, index)
        ordinals = np.array([chunk.ordinal for chunk in index.chunks])
        # lexsort uses the last key as primary: score descending, then ordinal.
        order = np.lexsort((ordinals, -scores))

        results: list[RetrievalResult] = []
        for position in order:
            score = float(scores[position])
            if score <= threshold:
                break
            results.append(RetrievalResult(chunk=index.chunks[position], score=score))
            if len(results) == k:
                break

        logger.info(
            "Retrieved %d/%d chunks above %.2f for %s (%s)",
            len(results),
            len(index),
            threshold,
            index.material_id,
            index.variant.value,
        )
        return results
