# docchat/workflow/confidence.py

import math
from typing import Sequence

from docchat.config import CONFIDENCE_SATURATION
from docchat.memory.reranker import query_terms
from docchat.memory.types import RetrievalCandidate


def score_confidence(
    candidates: Sequence[RetrievalCandidate],
    question: str,
) -> int:
    """
    Heuristic 0-100 confidence from retrieval quality.

    Half of the score comes from how many candidates were found
    (saturating at CONFIDENCE_SATURATION), half from the average share
    of question terms each candidate contains.
    """

    if not candidates:
        return 0

    terms = query_terms(question)

    base = min(len(candidates) / CONFIDENCE_SATURATION, 1.0)

    if terms:
        total = 0.0
        for candidate in candidates:
            content = candidate.content.lower()
            matches = sum(1 for term in terms if term in content)
            total += matches / len(terms)
        avg_relevance = total / len(candidates)
    else:
        avg_relevance = 0.0

    # half-up rounding
    score = math.floor((base * 0.5 + avg_relevance * 0.5) * 100 + 0.5)

    return max(0, min(100, score))
