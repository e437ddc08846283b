# docchat/knowledge/snippets.py

"""
Static background knowledge injected when documents are missing or the
accuracy mode allows general knowledge.

Rules are plain regular expressions matched case-insensitively against
the question; every matching rule contributes its snippets.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Tuple

from docchat.config import KNOWLEDGE_PATH

logger = logging.getLogger(__name__)


class KnowledgeSnippetProvider(ABC):

    @abstractmethod
    def lookup(self, question: str) -> str:
        """Background text relevant to the question, or ""."""

    @abstractmethod
    def full_background(self) -> str:
        """Complete background block used when no documents exist."""


class NullKnowledgeProvider(KnowledgeSnippetProvider):

    def lookup(self, question: str) -> str:
        return ""

    def full_background(self) -> str:
        return ""


class RuleBasedKnowledgeProvider(KnowledgeSnippetProvider):

    def __init__(
        self,
        title: str,
        overview: List[str],
        rules: List[Tuple[str, List[str]]],
    ):

        self._title = title
        self._overview = overview
        self._rules = [
            (re.compile(pattern, re.IGNORECASE), snippets)
            for pattern, snippets in rules
        ]

    @classmethod
    def from_file(cls, path: str = KNOWLEDGE_PATH) -> KnowledgeSnippetProvider:
        """
        Load rules from JSON. A missing or malformed file yields an
        empty provider so the assistant still answers from documents.
        """

        try:

            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            provider = cls(
                title=data.get("title", "Background Knowledge"),
                overview=data.get("overview", []),
                rules=[
                    (rule["pattern"], rule["snippets"])
                    for rule in data.get("rules", [])
                ],
            )

        except (OSError, ValueError, KeyError, re.error) as e:

            logger.warning(
                "Knowledge base unavailable, continuing without it",
                extra={"path": path, "error": str(e)},
            )

            return NullKnowledgeProvider()

        logger.info(
            "Knowledge base loaded",
            extra={"path": path, "rules": len(provider._rules)},
        )

        return provider

    def lookup(self, question: str) -> str:

        matched = []

        for pattern, snippets in self._rules:
            if pattern.search(question):
                matched.extend(snippets)

        if not matched:
            return ""

        return f"\n\n{self._title}:\n" + "\n\n".join(matched) + "\n"

    def full_background(self) -> str:

        if not self._overview:
            return ""

        return "\n" + "\n".join(self._overview) + "\n"
