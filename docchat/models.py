# docchat/models.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Language(str, Enum):
    ENGLISH = "english"
    HINDI = "hindi"


class AccuracyMode(str, Enum):
    STRICT = "strict"
    BALANCED = "balanced"
    FLEXIBLE = "flexible"


class ContextWindow(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    HIGH = "high"


class StreamRequest(BaseModel):
    """Request for a streamed answer."""
    question: Optional[str] = Field(None, max_length=4000)
    language: Language = Language.ENGLISH
    accuracy_mode: AccuracyMode = AccuracyMode.BALANCED
    context_window: ContextWindow = ContextWindow.MEDIUM


class QueryRequest(StreamRequest):
    """Request to answer a question from the uploaded documents."""
    conversation_id: str = Field("default", min_length=1, max_length=100)


class SourceMetadata(BaseModel):
    source: str
    type: str
    pages: Optional[int] = None
    sheet: Optional[str] = None
    chunk_index: int
    relevance_score: float = Field(..., ge=0.0, le=1.0)


class SourceInfo(BaseModel):
    """One retrieved passage backing an answer."""
    id: int
    content: str
    metadata: SourceMetadata
    preview: str


class QueryResponse(BaseModel):
    answer: str
    sources: List[SourceInfo]
    has_context: bool
    confidence: int = Field(..., ge=0, le=100)


class ClearHistoryRequest(BaseModel):
    conversation_id: str = Field("default", min_length=1, max_length=100)


class FileIngestResult(BaseModel):
    filename: str
    chunks_added: int
    success: bool
    error: Optional[str] = None


class UploadResponse(BaseModel):
    """Response after uploading a batch of documents."""
    message: str
    files: List[FileIngestResult]
    total_chunks: int


class DocumentInfo(BaseModel):
    """Information about an indexed source file."""
    name: str
    type: str
    chunk_count: int
    first_indexed_at: datetime


class ListDocumentsResponse(BaseModel):
    documents: List[DocumentInfo]


class ClearResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    total_documents: int
    total_chunks: int
    llm_providers: List[str]
