# docchat/memory/chunker.py

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docchat.config import (
    CHUNK_OVERLAP,
    CHUNK_SEPARATORS,
    CHUNK_SIZE,
)
from docchat.memory.types import Chunk, ChunkMetadata, ExtractedDocument

logger = logging.getLogger(__name__)


class Chunker:
    """
    Splits extracted documents into numbered chunks.

    Architecture contract:
    loader → chunker → vector index

    Guarantees:
    • every chunk is at most chunk_size characters
    • neighbouring chunks of one source share at most chunk_overlap characters
    • chunk_index is a contiguous 0-based sequence per source
    • empty documents produce no chunks
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        separators: Optional[Sequence[str]] = None,
    ):

        if chunk_size <= 0:
            raise ValueError(f"Invalid chunk size: {chunk_size}")

        if chunk_overlap < 0:
            raise ValueError(f"Invalid chunk overlap: {chunk_overlap}")

        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"Overlap must be smaller than chunk size "
                f"(overlap={chunk_overlap}, size={chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators or CHUNK_SEPARATORS)

        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=self.separators,
            length_function=len,
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def chunk(self, documents: Sequence[ExtractedDocument]) -> List[Chunk]:

        # pieces grouped by source, keeping first-seen order
        pieces_by_source: "OrderedDict[str, List[tuple]]" = OrderedDict()

        for document in documents:

            pieces = self.split_text(document.content)

            if not pieces:
                logger.warning(
                    "Chunking skipped: empty document",
                    extra={"source": document.source},
                )
                continue

            bucket = pieces_by_source.setdefault(document.source, [])
            bucket.extend((document, piece) for piece in pieces)

        created_at = datetime.now(timezone.utc)
        chunks: List[Chunk] = []

        for source, entries in pieces_by_source.items():

            total = len(entries)

            for index, (document, piece) in enumerate(entries):
                chunks.append(
                    Chunk(
                        content=piece,
                        metadata=ChunkMetadata(
                            source=source,
                            document_type=document.document_type,
                            chunk_index=index,
                            chunk_count=total,
                            created_at=created_at,
                            sheet_name=document.sheet_name,
                            page_count=document.page_count,
                            row_count=document.row_count,
                        ),
                    )
                )

        logger.info(
            "Chunking completed",
            extra={
                "documents": len(documents),
                "sources": len(pieces_by_source),
                "chunk_size": self.chunk_size,
                "overlap": self.chunk_overlap,
                "chunks_created": len(chunks),
            },
        )

        return chunks

    def split_text(self, text: str) -> List[str]:

        if not text or not text.strip():
            return []

        return self._splitter.split_text(text)
