"""In-process map of published material indexes."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Sequence

from .config import config
from .models import Chunk, LanguageVariant, MaterialIndex

logger = config.get_logger(__name__)

IndexKey = tuple[str, LanguageVariant]


class VectorIndex:
    """Thread-safe store of immutable ``MaterialIndex`` values.

    Indexes are replaced whole, so a reader holding a reference always sees a
    complete snapshot. When ``max_materials`` is positive, the least recently
    used entries are dropped once the capacity is exceeded.
    """

    def __init__(self, max_materials: int | None = None) -> None:
        if max_materials is None:
            max_materials = config.INDEX_MAX_MATERIALS
        self.max_materials = max(0, max_materials)
        self._entries: OrderedDict[IndexKey, MaterialIndex] = OrderedDict()
        self._lock = threading.Lock()

    def put(
        self,
        material_id: str,
        variant: LanguageVariant,
        chunks: Sequence[Chunk],
        content_hash: str,
    ) -> MaterialIndex:
        """Build and publish an index for a (material, variant).

        Returns:
            The published index.
        """
        index = MaterialIndex(
            material_id=material_id,
            variant=LanguageVariant(variant),
            chunks=tuple(chunks),
            content_hash=content_hash,
        )
        self.publish(index)
        return index

    def publish(self, index: MaterialIndex) -> None:
        """Atomically replace whatever is stored under the index's key."""
        with self._lock:
            self._entries[index.key] = index
            self._entries.move_to_end(index.key)
            dropped = self._enforce_capacity()
        logger.info(
            "Published index for %s (%s): %d chunks",
            index.material_id,
            index.variant.value,
            len(index),
        )
        for key in dropped:
            logger.info(
                "Evicted least recently used index %s (%s)", key[0], key[1].value
            )

    def get(self, material_id: str, variant: LanguageVariant) -> MaterialIndex | None:
        """Return the published index, or None when absent."""
        key = (material_id, LanguageVariant(variant))
        with self._lock:
            index = self._entries.get(key)
            if index is not None:
                self._entries.move_to_end(key)
        return index

    def evict(self, material_id: str) -> int:
        """Drop every variant indexed for a material.

        Returns:
            Number of indexes removed.
        """
        with self._lock:
            keys = [key for key in self._entries if key[0] == material_id]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.info("Evicted %d index(es) for material %s", len(keys), material_id)
        return len(keys)

    def keys(self) -> list[IndexKey]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def _enforce_capacity(self) -> list[IndexKey]:
        dropped: list[IndexKey] = []
        if not self.max_materials:
            return dropped
        while len(self._entries) > self.max_materials:
            key, _ = self._entries.popitem(last=False)
            dropped.append(key)
        return dropped
