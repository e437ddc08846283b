# docchat/memory/retriever.py

import logging
from typing import List, Optional

from docchat.config import DEFAULT_CONTEXT_WINDOW, OVERFETCH_FACTOR
from docchat.memory.reranker import Reranker, query_terms
from docchat.memory.store import VectorIndex
from docchat.memory.types import RetrievalCandidate
from docchat.prompts.context import resolve_chunk_count

logger = logging.getLogger(__name__)


class HybridRetriever:
    """
    Semantic over-fetch followed by a lexical precision filter.

    Candidates that share no term with the question are dropped, unless
    that would drop all of them, in which case the semantic results are
    used unfiltered.
    """

    def __init__(
        self,
        index: VectorIndex,
        reranker: Optional[Reranker] = None,
        overfetch_factor: int = OVERFETCH_FACTOR,
    ):

        self._index = index
        self._reranker = reranker or Reranker()
        self._overfetch_factor = overfetch_factor

    def retrieve(
        self,
        question: str,
        context_window: str = DEFAULT_CONTEXT_WINDOW,
    ) -> List[RetrievalCandidate]:

        k = resolve_chunk_count(context_window)

        semantic = self._index.search(question, k * self._overfetch_factor)

        if not semantic:
            return []

        terms = query_terms(question)

        filtered = [
            candidate
            for candidate in semantic
            if any(term in candidate.content.lower() for term in terms)
        ]

        pool = filtered or semantic

        reranked = self._reranker.rerank(pool, question)

        logger.info(
            "Retrieval completed",
            extra={
                "context_window": context_window,
                "k": k,
                "semantic_hits": len(semantic),
                "lexical_hits": len(filtered),
                "returned": min(k, len(reranked)),
            },
        )

        return reranked[:k]
