# tests/conftest.py
import os
import re
import sys
import tempfile
import zlib

import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Keep metrics files and analytics out of the developer's environment
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="docchat-tests-")
os.environ["POSTHOG_API_KEY"] = ""

from fastapi.testclient import TestClient

from docchat.api import routes
from docchat.knowledge.snippets import KnowledgeSnippetProvider
from docchat.llm.client import GenerativeModel
from docchat.llm.multi_model_client import MultiModelLLMClient
from docchat.main import app
from docchat.memory.chunker import Chunker
from docchat.memory.conversation import ConversationStore
from docchat.memory.embedder import Embedder
from docchat.memory.loader import FileTextExtractor
from docchat.memory.retriever import HybridRetriever
from docchat.memory.similarity import FaissSimilarityIndex
from docchat.memory.store import VectorIndex
from docchat.memory.types import Chunk, ChunkMetadata, DocumentType
from docchat.workflow.document_qa import AnswerOrchestrator
from docchat.workflow.ingestion import IngestionService


# ============================================================
# TEST DOUBLES
# ============================================================

class HashingEmbedder(Embedder):
    """
    Deterministic bag-of-words embedding.

    Every word is hashed onto one axis, so texts sharing words have a
    positive cosine similarity and unrelated texts are near orthogonal.
    """

    def __init__(self, dimension: int = 256):
        super().__init__(batch_size=8)
        self._dimension = dimension
        self.batches = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    def _embed_batch(self, texts):

        self.batches += 1
        vectors = []

        for text in texts:
            vector = [0.0] * self._dimension
            for word in re.findall(r"\w+", text.lower()):
                vector[zlib.crc32(word.encode("utf-8")) % self._dimension] += 1.0
            vectors.append(vector)

        return vectors


class ScriptedLLM(GenerativeModel):
    """Returns a fixed answer and records every prompt it receives."""

    name = "scripted"

    def __init__(self, answer="Hard hats are required on site.", fragments=None, error=None):
        self.answer = answer
        self.fragments = fragments
        self.error = error
        self.calls = 0
        self.prompts = []
        self.configs = []

    def generate(self, prompt, config):

        self.calls += 1
        self.prompts.append(prompt)
        self.configs.append(config)

        if self.error is not None:
            raise self.error

        return self.answer

    def generate_stream(self, prompt, config):

        self.calls += 1
        self.prompts.append(prompt)
        self.configs.append(config)

        if self.error is not None:
            raise self.error

        for fragment in self.fragments or [self.answer]:
            yield fragment


class StaticKnowledge(KnowledgeSnippetProvider):
    """Background knowledge that only matches questions mentioning ONGC."""

    SNIPPET = "ONGC is an oil and gas company."
    BACKGROUND = "ONGC BACKGROUND OVERVIEW"

    def lookup(self, question):

        if "ongc" not in question.lower():
            return ""

        return f"\n\nBackground:\n{self.SNIPPET}\n"

    def full_background(self):
        return f"\n{self.BACKGROUND}\n"


def make_chunk(content, source="notes.txt", index=0, count=1, document_type=DocumentType.TEXT):

    return Chunk(
        content=content,
        metadata=ChunkMetadata(
            source=source,
            document_type=document_type,
            chunk_index=index,
            chunk_count=count,
        ),
    )


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def embedder():
    return HashingEmbedder()


@pytest.fixture
def vector_index(embedder):
    return VectorIndex(lambda: FaissSimilarityIndex(embedder))


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def knowledge():
    return StaticKnowledge()


@pytest.fixture
def conversations():
    return ConversationStore()


@pytest.fixture
def ingestion_service(vector_index):

    return IngestionService(
        extractor=FileTextExtractor(),
        chunker=Chunker(),
        index=vector_index,
    )


@pytest.fixture
def orchestrator(vector_index, llm, conversations, knowledge):

    return AnswerOrchestrator(
        retriever=HybridRetriever(vector_index),
        llm_client=llm,
        conversations=conversations,
        knowledge=knowledge,
    )


@pytest.fixture
def client(vector_index, llm, conversations, knowledge, ingestion_service):
    """
    FastAPI test client wired to in-memory fakes.

    The scripted model sits behind the real multi-provider client so
    error classification runs exactly as in production.
    """

    llm_client = MultiModelLLMClient(providers=[llm])

    orchestrator = AnswerOrchestrator(
        retriever=HybridRetriever(vector_index),
        llm_client=llm_client,
        conversations=conversations,
        knowledge=knowledge,
    )

    app.dependency_overrides[routes.get_llm_client] = lambda: llm_client
    app.dependency_overrides[routes.get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[routes.get_ingestion_service] = lambda: ingestion_service

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def upload_text(client):
    """Upload one or more (filename, text) pairs through the API."""

    def _upload(*documents):

        response = client.post(
            "/api/documents/upload",
            files=[
                ("files", (name, text.encode("utf-8"), "text/plain"))
                for name, text in documents
            ],
        )

        assert response.status_code == 200, f"Upload failed: {response.json()}"

        return response.json()

    return _upload
