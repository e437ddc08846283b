# docchat/prompts/context.py

from typing import Optional, Sequence

from docchat.config import CONTEXT_WINDOW_CHUNKS, DEFAULT_CONTEXT_WINDOW
from docchat.memory.types import RetrievalCandidate


def resolve_chunk_count(context_window: Optional[str]) -> int:
    """Chunks to hand the model for a context window setting.

    Unknown settings fall back to the default window.
    """

    return CONTEXT_WINDOW_CHUNKS.get(
        context_window, CONTEXT_WINDOW_CHUNKS[DEFAULT_CONTEXT_WINDOW]
    )


def assemble_context(candidates: Sequence[RetrievalCandidate]) -> str:
    """
    Render candidates as numbered, source-labeled blocks.

    The numbering is what the model cites ("According to Document 2").
    An empty result means "no context" to the prompt builder.
    """

    blocks = []

    for i, candidate in enumerate(candidates, 1):

        meta = candidate.metadata

        blocks.append(
            f"[Document {i}] (Source: {meta.source}, Type: {meta.document_type.value})\n"
            f"{candidate.content}\n"
            f"---"
        )

    return "\n\n".join(blocks)
