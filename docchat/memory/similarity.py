# docchat/memory/similarity.py

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

import faiss
import numpy as np

from docchat.memory.embedder import Embedder
from docchat.memory.types import Chunk

logger = logging.getLogger(__name__)


class EmbeddingSimilarityIndex(ABC):
    """Nearest-neighbour search over chunk embeddings.

    Embedding is a separate step from add/search so callers can run
    the provider round trip without holding their own locks. Distances
    are cosine distances: 0 means identical direction.
    """

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> np.ndarray:
        pass

    @abstractmethod
    def add(self, chunks: Sequence[Chunk], vectors: np.ndarray) -> None:
        pass

    @abstractmethod
    def search(self, vector: np.ndarray, k: int) -> List[Tuple[Chunk, float]]:
        pass

    @property
    @abstractmethod
    def count(self) -> int:
        pass


class FaissSimilarityIndex(EmbeddingSimilarityIndex):
    """
    In-memory FAISS inner-product index over normalized embeddings.

    Inner product of unit vectors is cosine similarity, reported back
    as distance = 1 - similarity.
    """

    def __init__(self, embedder: Embedder):

        self._embedder = embedder
        self._index = faiss.IndexFlatIP(embedder.dimension)
        self._chunks: List[Chunk] = []

        logger.info(
            "New FAISS index created",
            extra={"dimension": embedder.dimension},
        )

    @property
    def count(self) -> int:
        return self._index.ntotal

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        return np.ascontiguousarray(self._embedder.embed(list(texts)), dtype="float32")

    def add(self, chunks: Sequence[Chunk], vectors: np.ndarray) -> None:

        if not chunks:
            return

        if len(vectors) != len(chunks):
            raise ValueError(
                f"Got {len(vectors)} embeddings for {len(chunks)} chunks"
            )

        self._index.add(np.ascontiguousarray(vectors, dtype="float32"))
        self._chunks.extend(chunks)

    def search(self, vector: np.ndarray, k: int) -> List[Tuple[Chunk, float]]:

        if self._index.ntotal == 0:
            return []

        similarities, indices = self._index.search(
            np.ascontiguousarray(vector, dtype="float32").reshape(1, -1),
            min(k, self._index.ntotal),
        )

        results = []

        for similarity, idx in zip(similarities[0], indices[0]):

            # faiss pads missing neighbours with -1
            if idx < 0:
                continue

            results.append((self._chunks[idx], 1.0 - float(similarity)))

        return results
