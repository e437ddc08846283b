# docchat/memory/types.py
"""
Core value types passed between ingestion and retrieval.

Chunks are immutable once created; retrieval wraps them in candidates
that carry the scores computed along the way.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class DocumentType(str, Enum):
    TEXT = "text"
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    CSV = "csv"


@dataclass(frozen=True)
class ExtractedDocument:
    """Raw text of one logical document as produced by an extractor.

    Spreadsheets yield one ExtractedDocument per sheet.
    """

    content: str
    source: str
    document_type: DocumentType
    sheet_name: Optional[str] = None
    page_count: Optional[int] = None
    row_count: Optional[int] = None


@dataclass(frozen=True)
class ChunkMetadata:
    source: str
    document_type: DocumentType
    chunk_index: int
    chunk_count: int
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    sheet_name: Optional[str] = None
    page_count: Optional[int] = None
    row_count: Optional[int] = None

    def __post_init__(self):
        if not self.source:
            raise ValueError("Chunk source is required")
        if self.chunk_count < 1:
            raise ValueError(f"chunk_count must be >= 1, got {self.chunk_count}")
        if not 0 <= self.chunk_index < self.chunk_count:
            raise ValueError(
                f"chunk_index {self.chunk_index} out of range "
                f"for chunk_count {self.chunk_count}"
            )


@dataclass(frozen=True)
class Chunk:
    content: str
    metadata: ChunkMetadata

    def __post_init__(self):
        if not self.content:
            raise ValueError("Chunk content must be non-empty")


@dataclass(frozen=True)
class RetrievalCandidate:
    """A chunk returned by search, with its relevance and lexical scores."""

    chunk: Chunk
    relevance_score: float
    lexical_score: int = 0

    @property
    def content(self) -> str:
        return self.chunk.content

    @property
    def metadata(self) -> ChunkMetadata:
        return self.chunk.metadata

    def with_lexical_score(self, score: int) -> "RetrievalCandidate":
        return replace(self, lexical_score=score)


@dataclass(frozen=True)
class IndexedSource:
    name: str
    type: str
    chunk_count: int
    first_indexed_at: datetime
