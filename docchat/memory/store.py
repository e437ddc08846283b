# docchat/memory/store.py

import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence

from docchat.errors import RetrievalFailure
from docchat.memory.similarity import EmbeddingSimilarityIndex
from docchat.memory.types import Chunk, IndexedSource, RetrievalCandidate

logger = logging.getLogger(__name__)


def distance_to_score(distance: float) -> float:
    """Map a similarity-index distance onto a [0, 1] relevance score."""

    return min(1.0, max(0.0, 1.0 - distance))


class VectorIndex:
    """
    Owns every indexed chunk.

    The underlying similarity index is created on the first non-empty
    add, so an application with no uploads never touches the embedding
    provider. Embedding runs outside the lock; only the in-memory
    insert and lookup are serialized, so a search sees either none or
    all of a batch and never waits on another caller's provider call.
    """

    def __init__(self, index_factory: Callable[[], EmbeddingSimilarityIndex]):

        self._index_factory = index_factory
        self._index: Optional[EmbeddingSimilarityIndex] = None
        self._chunks: List[Chunk] = []
        self._lock = threading.RLock()

    def _current_index(self) -> EmbeddingSimilarityIndex:

        with self._lock:

            if self._index is None:
                self._index = self._index_factory()
                logger.info("Similarity index initialized")

            return self._index

    # ============================================================
    # WRITE PATH
    # ============================================================

    def add(self, chunks: Sequence[Chunk]) -> int:

        if not chunks:
            return 0

        vectors = self._current_index().embed([chunk.content for chunk in chunks])

        with self._lock:

            # a clear during embedding means this batch lands in a fresh index
            index = self._current_index()

            index.add(chunks, vectors)
            self._chunks.extend(chunks)

            logger.info(
                "Chunks added to index",
                extra={"added": len(chunks), "total": len(self._chunks)},
            )

        return len(chunks)

    def clear(self) -> None:

        with self._lock:
            self._index = None
            self._chunks = []

        logger.info("Vector index cleared")

    # ============================================================
    # READ PATH
    # ============================================================

    def search(self, query: str, k: int) -> List[RetrievalCandidate]:

        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")

        with self._lock:
            index = self._index
            empty = not self._chunks

        if index is None or empty:
            logger.info("Search on empty index")
            return []

        try:

            vector = index.embed([query])

            with self._lock:

                if self._index is None:
                    return []

                hits = self._index.search(vector, k)

        except Exception as e:
            raise RetrievalFailure(f"Similarity search failed: {e}") from e

        candidates = [
            RetrievalCandidate(chunk=chunk, relevance_score=distance_to_score(distance))
            for chunk, distance in hits
        ]

        candidates.sort(key=lambda c: c.relevance_score, reverse=True)

        return candidates[:k]

    @property
    def count(self) -> int:
        return len(self._chunks)

    def list_sources(self) -> List[IndexedSource]:

        stats: Dict[str, dict] = {}

        with self._lock:

            for chunk in self._chunks:

                meta = chunk.metadata
                entry = stats.get(meta.source)

                if entry is None:
                    stats[meta.source] = {
                        "name": meta.source,
                        "type": meta.document_type.value,
                        "chunk_count": 1,
                        "first_indexed_at": meta.created_at,
                    }
                    continue

                entry["chunk_count"] += 1
                entry["first_indexed_at"] = min(
                    entry["first_indexed_at"], meta.created_at
                )

        return [IndexedSource(**entry) for entry in stats.values()]
