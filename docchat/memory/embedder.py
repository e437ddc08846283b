# docchat/memory/embedder.py

"""
Embedding wrappers with batching.

Architecture contract:
chunker → embedder → similarity index

Guarantees:
• Always returns numpy float32 array of shape (n, dimension)
• Always L2-normalized (cosine-ready)
• Batched provider calls
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import google.generativeai as genai
import numpy as np
from openai import OpenAI

from docchat.config import (
    EMBED_BATCH_SIZE,
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    GOOGLE_API_KEY,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)

_OPENAI_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

_GEMINI_DIMENSIONS = {
    "models/text-embedding-004": 768,
    "models/embedding-001": 768,
}


def normalize(vectors: np.ndarray) -> np.ndarray:

    norms = np.linalg.norm(vectors, axis=1, keepdims=True)

    return vectors / np.clip(norms, 1e-10, None)


class Embedder(ABC):
    """Turns texts into normalized float32 vectors."""

    def __init__(self, batch_size: int = EMBED_BATCH_SIZE):
        self.batch_size = batch_size

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    @abstractmethod
    def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        pass

    def embed(self, texts: List[str]) -> np.ndarray:

        if not texts:
            return np.empty((0, self.dimension), dtype="float32")

        batches = []

        for start in range(0, len(texts), self.batch_size):

            batch = texts[start:start + self.batch_size]

            vectors = np.array(self._embed_batch(batch), dtype="float32")

            batches.append(normalize(vectors))

        embeddings = np.vstack(batches)

        logger.debug(
            "Embedding completed",
            extra={"texts": len(texts), "shape": embeddings.shape},
        )

        return embeddings


class OpenAIEmbedder(Embedder):

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str = OPENAI_API_KEY,
        **kwargs,
    ):

        super().__init__(**kwargs)

        if model not in _OPENAI_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        self._client = OpenAI(api_key=api_key or None)
        self._model = model
        self._dimension = _OPENAI_DIMENSIONS[model]

    @property
    def dimension(self) -> int:
        return self._dimension

    def _embed_batch(self, texts: List[str]) -> List[List[float]]:

        response = self._client.embeddings.create(
            model=self._model,
            input=texts,
        )

        return [item.embedding for item in response.data]


class GeminiEmbedder(Embedder):

    def __init__(
        self,
        model: str = "models/text-embedding-004",
        api_key: str = GOOGLE_API_KEY,
        task_type: str = "retrieval_document",
        **kwargs,
    ):

        super().__init__(**kwargs)

        if model not in _GEMINI_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        if api_key:
            genai.configure(api_key=api_key)

        self._model = model
        self._task_type = task_type
        self._dimension = _GEMINI_DIMENSIONS[model]

    @property
    def dimension(self) -> int:
        return self._dimension

    def _embed_batch(self, texts: List[str]) -> List[List[float]]:

        result = genai.embed_content(
            model=self._model,
            content=texts,
            task_type=self._task_type,
        )

        return result["embedding"]


def create_embedder(
    provider: str = EMBEDDING_PROVIDER,
    model: str = EMBEDDING_MODEL,
) -> Embedder:

    logger.info(
        "Initializing embedding model",
        extra={"provider": provider, "model": model},
    )

    if provider == "gemini":
        return GeminiEmbedder(model=model)

    if provider == "openai":
        return OpenAIEmbedder(model=model)

    raise ValueError(f"Unknown embedding provider: {provider}")
