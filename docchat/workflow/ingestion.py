# docchat/workflow/ingestion.py

import logging
from typing import Dict, List, Sequence, Tuple

from docchat.errors import IngestError
from docchat.memory.chunker import Chunker
from docchat.memory.loader import TextExtractor
from docchat.memory.store import VectorIndex
from docchat.memory.types import ExtractedDocument, IndexedSource

logger = logging.getLogger(__name__)


class IngestionService:
    """
    extract → chunk → index, one file at a time.

    A failing file is reported in the batch result and never prevents
    the remaining files from being indexed.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: Chunker,
        index: VectorIndex,
    ):

        self._extractor = extractor
        self._chunker = chunker
        self._index = index

    def ingest(self, documents: Sequence[ExtractedDocument]) -> int:
        """Chunk and index already-extracted documents."""

        chunks = self._chunker.chunk(documents)

        return self._index.add(chunks)

    def ingest_files(self, files: Sequence[Tuple[str, bytes]]) -> Dict:

        results: List[Dict] = []
        total_chunks = 0

        for filename, file_bytes in files:

            try:

                documents = self._extractor.extract(file_bytes, filename)
                added = self.ingest(documents)

            except IngestError as e:

                logger.warning(
                    "Document ingestion failed",
                    extra={
                        "source": filename,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )

                results.append({
                    "filename": filename,
                    "chunks_added": 0,
                    "success": False,
                    "error": str(e),
                })
                continue

            except Exception as e:

                # embedding provider or index failure for this file only
                logger.error(
                    "Document indexing failed",
                    extra={"source": filename, "error": str(e)},
                    exc_info=True,
                )

                results.append({
                    "filename": filename,
                    "chunks_added": 0,
                    "success": False,
                    "error": f"Failed to index document: {e}",
                })
                continue

            total_chunks += added

            results.append({
                "filename": filename,
                "chunks_added": added,
                "success": True,
                "error": None,
            })

        succeeded = sum(1 for r in results if r["success"])

        logger.info(
            "Batch ingestion complete",
            extra={
                "files": len(files),
                "succeeded": succeeded,
                "total_chunks": total_chunks,
            },
        )

        return {
            "message": f"Processed {succeeded} of {len(files)} files",
            "files": results,
            "total_chunks": total_chunks,
        }

    def clear_all(self) -> bool:

        self._index.clear()

        return True

    def list_sources(self) -> List[IndexedSource]:
        return self._index.list_sources()
