# docchat/memory/reranker.py

from typing import List, Sequence

from docchat.memory.types import RetrievalCandidate


def query_terms(question: str) -> List[str]:
    """Lowercased whitespace-separated terms, duplicates kept."""

    return question.lower().split()


def lexical_score(content: str, terms: Sequence[str]) -> int:
    """Number of distinct terms occurring as substrings of content.

    Plain containment: "cat" matches inside "category".
    """

    lowered = content.lower()

    return sum(1 for term in dict.fromkeys(terms) if term in lowered)


class Reranker:
    """
    Keyword-presence re-ranking.

    Breaks ties between near-equal embedding scores using literal term
    presence. Python's sort is stable, so equal lexical scores keep the
    semantic order they arrived in.
    """

    def rerank(
        self,
        candidates: Sequence[RetrievalCandidate],
        question: str,
    ) -> List[RetrievalCandidate]:

        if not candidates:
            return []

        terms = query_terms(question)

        scored = [
            candidate.with_lexical_score(lexical_score(candidate.content, terms))
            for candidate in candidates
        ]

        scored.sort(key=lambda c: c.lexical_score, reverse=True)

        return scored
