import json
import logging
import queue
import threading
import time
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from docchat.config import MAX_FILE_SIZE_MB, MAX_FILES_PER_UPLOAD
from docchat.errors import DocChatError, InputError, ModelAuthError
from docchat.knowledge.snippets import RuleBasedKnowledgeProvider
from docchat.llm.multi_model_client import MultiModelLLMClient
from docchat.memory.chunker import Chunker
from docchat.memory.conversation import ConversationStore
from docchat.memory.embedder import create_embedder
from docchat.memory.loader import FileTextExtractor
from docchat.memory.retriever import HybridRetriever
from docchat.memory.similarity import FaissSimilarityIndex
from docchat.memory.store import VectorIndex
from docchat.models import (
    ClearHistoryRequest,
    ClearResponse,
    DocumentInfo,
    HealthResponse,
    ListDocumentsResponse,
    QueryRequest,
    QueryResponse,
    StreamRequest,
    UploadResponse,
)
from docchat.observability.metrics import metrics_tracker
from docchat.observability.posthog_client import posthog_client
from docchat.workflow.document_qa import AnswerOrchestrator
from docchat.workflow.ingestion import IngestionService


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# SERVICE SINGLETONS
# ============================================================
# Built on first use so the app imports without provider credentials.
# Tests replace these through app.dependency_overrides.

@lru_cache(maxsize=None)
def get_vector_index() -> VectorIndex:
    return VectorIndex(lambda: FaissSimilarityIndex(create_embedder()))


@lru_cache(maxsize=None)
def get_llm_client() -> MultiModelLLMClient:
    return MultiModelLLMClient()


@lru_cache(maxsize=None)
def get_orchestrator() -> AnswerOrchestrator:

    return AnswerOrchestrator(
        retriever=HybridRetriever(get_vector_index()),
        llm_client=get_llm_client(),
        conversations=ConversationStore(),
        knowledge=RuleBasedKnowledgeProvider.from_file(),
    )


@lru_cache(maxsize=None)
def get_ingestion_service() -> IngestionService:

    return IngestionService(
        extractor=FileTextExtractor(),
        chunker=Chunker(),
        index=get_vector_index(),
    )


# ============================================================
# HELPERS
# ============================================================

QUERY_FAILED_MESSAGE = "Failed to process query"

_SSE_DONE = "data: [DONE]\n\n"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _to_http_error(error: DocChatError) -> HTTPException:

    if isinstance(error, InputError):
        return HTTPException(status_code=400, detail=str(error))

    if isinstance(error, ModelAuthError):
        return HTTPException(status_code=401, detail=str(error))

    return HTTPException(status_code=500, detail=QUERY_FAILED_MESSAGE)


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def validate_file_size(filename: str, content: bytes):

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {filename} ({size_mb:.2f}MB)",
        )


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(
    ingestion: IngestionService = Depends(get_ingestion_service),
    llm_client: MultiModelLLMClient = Depends(get_llm_client),
):

    sources = ingestion.list_sources()

    return HealthResponse(
        status="healthy",
        total_documents=len(sources),
        total_chunks=sum(s.chunk_count for s in sources),
        llm_providers=llm_client.get_usage_stats()["providers"],
    )


# ============================================================
# CHAT
# ============================================================

@router.post("/api/chat/query", response_model=QueryResponse)
def query(
    payload: QueryRequest,
    request: Request,
    orchestrator: AnswerOrchestrator = Depends(get_orchestrator),
):

    start_time = time.time()

    try:

        result = orchestrator.query(
            payload.question,
            conversation_id=payload.conversation_id,
            language=payload.language.value,
            accuracy_mode=payload.accuracy_mode.value,
            context_window=payload.context_window.value,
        )

    except DocChatError as e:

        logger.warning(
            "Query failed",
            extra={
                "request_id": _request_id(request),
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )

        posthog_client.track_error(
            distinct_id=_request_id(request),
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint="/api/chat/query",
        )

        raise _to_http_error(e) from e

    latency = time.time() - start_time
    sources = result["sources"]

    posthog_client.track_retrieval(
        distinct_id=_request_id(request),
        context_window=payload.context_window.value,
        chunks_retrieved=len(sources),
        top_score=sources[0]["metadata"]["relevance_score"] if sources else None,
    )

    posthog_client.track_query(
        distinct_id=_request_id(request),
        question=payload.question,
        accuracy_mode=payload.accuracy_mode.value,
        context_window=payload.context_window.value,
        streamed=False,
        latency=latency,
        sources=len(sources),
        confidence=result["confidence"],
    )

    return QueryResponse(**result)


@router.post("/api/chat/stream")
def stream(
    payload: StreamRequest,
    request: Request,
    orchestrator: AnswerOrchestrator = Depends(get_orchestrator),
):

    if not payload.question or not payload.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")

    request_id = _request_id(request)

    # None ends the stream; [DONE] is only sent after a successful answer
    events: "queue.Queue[Optional[str]]" = queue.Queue()

    def on_chunk(text: str):
        events.put(_sse({"type": "chunk", "content": text}))

    def produce():

        start_time = time.time()

        try:

            sources = orchestrator.stream_query(
                payload.question,
                on_chunk=on_chunk,
                language=payload.language.value,
                accuracy_mode=payload.accuracy_mode.value,
                context_window=payload.context_window.value,
            )

            events.put(_sse({"type": "sources", "sources": sources}))
            events.put(_SSE_DONE)

            posthog_client.track_query(
                distinct_id=request_id,
                question=payload.question,
                accuracy_mode=payload.accuracy_mode.value,
                context_window=payload.context_window.value,
                streamed=True,
                latency=time.time() - start_time,
                sources=len(sources),
            )

        except Exception as e:

            logger.error(
                "Streaming query failed",
                extra={
                    "request_id": request_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=not isinstance(e, DocChatError),
            )

            posthog_client.track_error(
                distinct_id=request_id,
                error_type=type(e).__name__,
                error_message=str(e),
                endpoint="/api/chat/stream",
            )

            message = str(e) if isinstance(e, ModelAuthError) else QUERY_FAILED_MESSAGE
            events.put(_sse({"type": "error", "content": message}))

        finally:
            events.put(None)

    def event_stream():

        threading.Thread(target=produce, daemon=True).start()

        while True:

            event = events.get()

            if event is None:
                break

            yield event

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("/api/chat/history/clear", response_model=ClearResponse)
def clear_history(
    payload: ClearHistoryRequest,
    orchestrator: AnswerOrchestrator = Depends(get_orchestrator),
):

    orchestrator.clear_history(payload.conversation_id)

    return ClearResponse(success=True, message="Conversation history cleared")


# ============================================================
# DOCUMENTS
# ============================================================

@router.post("/api/documents/upload", response_model=UploadResponse)
async def upload_documents(
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    ingestion: IngestionService = Depends(get_ingestion_service),
):

    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    if len(files) > MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: at most {MAX_FILES_PER_UPLOAD} per upload",
        )

    start_time = time.time()

    payloads = []

    for upload in files:

        content = await upload.read()

        validate_file_size(upload.filename, content)

        payloads.append((upload.filename, content))

    # extraction and embedding are blocking
    result = await run_in_threadpool(ingestion.ingest_files, payloads)

    posthog_client.track_documents_ingested(
        distinct_id=_request_id(request),
        files=len(payloads),
        succeeded=sum(1 for f in result["files"] if f["success"]),
        chunks=result["total_chunks"],
        latency=time.time() - start_time,
    )

    return UploadResponse(**result)


@router.get("/api/documents/list", response_model=ListDocumentsResponse)
def list_documents(ingestion: IngestionService = Depends(get_ingestion_service)):

    documents = [
        DocumentInfo(
            name=source.name,
            type=source.type,
            chunk_count=source.chunk_count,
            first_indexed_at=source.first_indexed_at,
        )
        for source in ingestion.list_sources()
    ]

    return ListDocumentsResponse(documents=documents)


@router.post("/api/documents/clear", response_model=ClearResponse)
def clear_documents(ingestion: IngestionService = Depends(get_ingestion_service)):

    ingestion.clear_all()

    logger.info("All documents cleared")

    return ClearResponse(success=True, message="All documents cleared successfully")


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
