# docchat/memory/loader.py

"""
Format-specific text extraction for uploaded files.

Architecture contract preserved:
loader → chunker → embedder → vector index

Supports:
- Plain text (.txt)
- PDF (.pdf)
- Spreadsheets (.xlsx, .xls), one document per sheet
- CSV (.csv)
"""

import io
import logging
import os
import zipfile
from abc import ABC, abstractmethod
from typing import Dict, List

import pandas as pd
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from docchat.config import ALLOWED_FILE_EXTENSIONS
from docchat.errors import DocumentParseError, UnsupportedFormat
from docchat.memory.types import DocumentType, ExtractedDocument

logger = logging.getLogger(__name__)


class TextExtractor(ABC):

    @abstractmethod
    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:
        pass


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


# ============================================================
# PLAIN TEXT
# ============================================================

class PlainTextExtractor(TextExtractor):

    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:

        try:
            content = file_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"{filename} is not valid UTF-8 text") from e

        return [
            ExtractedDocument(
                content=content,
                source=filename,
                document_type=DocumentType.TEXT,
            )
        ]


# ============================================================
# PDF
# ============================================================

class PdfExtractor(TextExtractor):

    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:

        try:
            reader = PdfReader(io.BytesIO(file_bytes))
            parts = [page.extract_text() or "" for page in reader.pages]
        except (PdfReadError, ValueError, OSError) as e:
            raise DocumentParseError(f"Could not read PDF {filename}: {e}") from e

        return [
            ExtractedDocument(
                content="\n".join(part for part in parts if part),
                source=filename,
                document_type=DocumentType.PDF,
                page_count=len(parts),
            )
        ]


# ============================================================
# TABULAR
# ============================================================

def _rows_to_text(frame: "pd.DataFrame") -> List[str]:

    lines = []

    for row in frame.itertuples(index=False):

        cells = [str(cell).strip() for cell in row if not pd.isna(cell)]
        cells = [cell for cell in cells if cell]

        if cells:
            lines.append(" | ".join(cells))

    return lines


class SpreadsheetExtractor(TextExtractor):

    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:

        try:
            sheets: Dict[str, pd.DataFrame] = pd.read_excel(
                io.BytesIO(file_bytes),
                sheet_name=None,
                header=None,
            )
        except (ValueError, OSError, ImportError, zipfile.BadZipFile) as e:
            raise DocumentParseError(f"Could not read spreadsheet {filename}: {e}") from e

        documents = []

        for sheet_name, frame in sheets.items():

            lines = _rows_to_text(frame)

            documents.append(
                ExtractedDocument(
                    content=f"Sheet: {sheet_name}\n\n" + "\n".join(lines),
                    source=filename,
                    document_type=DocumentType.SPREADSHEET,
                    sheet_name=str(sheet_name),
                    row_count=len(frame.index),
                )
            )

        return documents


class CsvExtractor(TextExtractor):

    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:

        try:
            frame = pd.read_csv(
                io.BytesIO(file_bytes),
                header=None,
                dtype=str,
                skip_blank_lines=True,
                keep_default_na=False,
            )
        except pd.errors.EmptyDataError:
            frame = pd.DataFrame()
        except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
            raise DocumentParseError(f"Could not parse CSV {filename}: {e}") from e

        lines = _rows_to_text(frame)

        return [
            ExtractedDocument(
                content="CSV Data:\n\n" + "\n".join(lines) if lines else "",
                source=filename,
                document_type=DocumentType.CSV,
                row_count=len(lines),
            )
        ]


# ============================================================
# MAIN ENTRY POINT (ARCHITECTURE CONTRACT)
# ============================================================

class FileTextExtractor(TextExtractor):
    """Dispatches on file extension."""

    def __init__(self):

        spreadsheet = SpreadsheetExtractor()

        self._extractors: Dict[str, TextExtractor] = {
            ".txt": PlainTextExtractor(),
            ".pdf": PdfExtractor(),
            ".xlsx": spreadsheet,
            ".xls": spreadsheet,
            ".csv": CsvExtractor(),
        }

    def extract(self, file_bytes: bytes, filename: str) -> List[ExtractedDocument]:

        extension = file_extension(filename)

        extractor = self._extractors.get(extension)

        if extractor is None or extension not in ALLOWED_FILE_EXTENSIONS:
            raise UnsupportedFormat(
                f"Unsupported file type: {extension or filename}. "
                f"Allowed: {', '.join(ALLOWED_FILE_EXTENSIONS)}"
            )

        documents = extractor.extract(file_bytes, filename)

        logger.info(
            "Text extracted",
            extra={
                "source": filename,
                "documents": len(documents),
                "characters": sum(len(d.content) for d in documents),
            },
        )

        return documents
