# docchat/workflow/document_qa.py

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from docchat.config import (
    DEFAULT_ACCURACY_MODE,
    DEFAULT_CONTEXT_WINDOW,
    FALLBACK_PREVIEW_CHARS,
    GENERATION_PRESETS,
    MAX_OUTPUT_TOKENS,
    SOURCE_PREVIEW_CHARS,
)
from docchat.errors import InputError, ModelError, RetrievalFailure
from docchat.knowledge.snippets import KnowledgeSnippetProvider, NullKnowledgeProvider
from docchat.llm.client import GenerationConfig, GenerativeModel, classify_model_error
from docchat.memory.conversation import ConversationStore, ConversationTurn
from docchat.memory.retriever import HybridRetriever
from docchat.memory.types import RetrievalCandidate
from docchat.prompts.context import assemble_context
from docchat.prompts.prompt_builder import PromptBuilder
from docchat.prompts.system_prompts import NO_DOCUMENTS_ANSWER
from docchat.workflow.confidence import score_confidence

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


def resolve_generation_config(
    accuracy_mode: str,
    context_window: str,
) -> GenerationConfig:
    """Sampling from the accuracy mode, output budget from the context window."""

    preset = GENERATION_PRESETS.get(
        accuracy_mode, GENERATION_PRESETS[DEFAULT_ACCURACY_MODE]
    )

    return GenerationConfig(
        temperature=preset["temperature"],
        top_k=preset["top_k"],
        top_p=preset["top_p"],
        max_output_tokens=MAX_OUTPUT_TOKENS.get(
            context_window, MAX_OUTPUT_TOKENS[DEFAULT_CONTEXT_WINDOW]
        ),
    )


def first_sentence(content: str) -> str:

    sentence = _SENTENCE_BOUNDARY.split(content, maxsplit=1)[0].strip()

    return sentence or content[:FALLBACK_PREVIEW_CHARS]


def enrich_sources(candidates: Sequence[RetrievalCandidate]) -> List[Dict]:
    """Source descriptors returned to the caller, in retrieval order."""

    sources = []

    for i, candidate in enumerate(candidates, 1):

        content = candidate.content
        meta = candidate.metadata

        preview = content[:SOURCE_PREVIEW_CHARS]
        if len(content) > SOURCE_PREVIEW_CHARS:
            preview += "..."

        sources.append({
            "id": i,
            "content": preview,
            "metadata": {
                "source": meta.source,
                "type": meta.document_type.value,
                "pages": meta.page_count,
                "sheet": meta.sheet_name,
                "chunk_index": meta.chunk_index,
                "relevance_score": round(candidate.relevance_score, 3),
            },
            "preview": first_sentence(content),
        })

    return sources


@dataclass
class PreparedQuery:
    candidates: List[RetrievalCandidate]
    prompt: str
    generation_config: GenerationConfig


class AnswerOrchestrator:
    """
    Retrieval-augmented answering.

    Both entry points share prepare(): retrieve → assemble → build
    prompt → resolve generation config. They differ only in how the
    model is invoked and in history handling: query() records the
    exchange, stream_query() does not.
    """

    def __init__(
        self,
        retriever: HybridRetriever,
        llm_client: GenerativeModel,
        conversations: ConversationStore,
        knowledge: Optional[KnowledgeSnippetProvider] = None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):

        self._retriever = retriever
        self._llm = llm_client
        self._conversations = conversations
        self._knowledge = knowledge or NullKnowledgeProvider()
        self._prompts = prompt_builder or PromptBuilder(self._knowledge)

    # ============================================================
    # SHARED PREPARE STEP
    # ============================================================

    def _retrieve(self, question: str, context_window: str) -> List[RetrievalCandidate]:

        try:
            return self._retriever.retrieve(question, context_window)
        except RetrievalFailure as e:
            logger.warning(
                "Retrieval failed, continuing without context",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return []

    def prepare(
        self,
        question: str,
        language: str = "english",
        accuracy_mode: str = DEFAULT_ACCURACY_MODE,
        context_window: str = DEFAULT_CONTEXT_WINDOW,
        history: Sequence[ConversationTurn] = (),
    ) -> PreparedQuery:

        candidates = self._retrieve(question, context_window)

        context = assemble_context(candidates)

        if candidates and accuracy_mode != "strict":
            context += self._knowledge.lookup(question)

        prompt = self._prompts.build(
            question=question,
            context=context,
            history=history,
            language=language,
            accuracy_mode=accuracy_mode,
            context_window=context_window,
        )

        return PreparedQuery(
            candidates=candidates,
            prompt=prompt,
            generation_config=resolve_generation_config(accuracy_mode, context_window),
        )

    # ============================================================
    # SINGLE SHOT
    # ============================================================

    def query(
        self,
        question: str,
        conversation_id: str = "default",
        language: str = "english",
        accuracy_mode: str = DEFAULT_ACCURACY_MODE,
        context_window: str = DEFAULT_CONTEXT_WINDOW,
    ) -> Dict:

        question = _require_question(question)

        prepared = self.prepare(
            question,
            language=language,
            accuracy_mode=accuracy_mode,
            context_window=context_window,
            history=self._conversations.get(conversation_id),
        )

        if accuracy_mode == "strict" and not prepared.candidates:

            logger.info(
                "Strict mode without documents, skipping generation",
                extra={"conversation_id": conversation_id},
            )

            return {
                "answer": NO_DOCUMENTS_ANSWER,
                "sources": [],
                "has_context": False,
                "confidence": 0,
            }

        try:
            answer = self._llm.generate(prepared.prompt, prepared.generation_config)
        except ModelError:
            raise
        except Exception as e:
            raise classify_model_error(e) from e

        self._conversations.append_exchange(conversation_id, question, answer)

        confidence = score_confidence(prepared.candidates, question)

        logger.info(
            "Query answered",
            extra={
                "conversation_id": conversation_id,
                "accuracy_mode": accuracy_mode,
                "context_window": context_window,
                "sources": len(prepared.candidates),
                "confidence": confidence,
            },
        )

        return {
            "answer": answer,
            "sources": enrich_sources(prepared.candidates),
            "has_context": bool(prepared.candidates),
            "confidence": confidence,
        }

    # ============================================================
    # STREAMING
    # ============================================================

    def stream_query(
        self,
        question: str,
        on_chunk: Callable[[str], None],
        language: str = "english",
        accuracy_mode: str = DEFAULT_ACCURACY_MODE,
        context_window: str = DEFAULT_CONTEXT_WINDOW,
    ) -> List[Dict]:
        """
        Deliver answer fragments to on_chunk as they arrive, then return
        the sources. Conversation history is neither read nor written.
        """

        question = _require_question(question)

        prepared = self.prepare(
            question,
            language=language,
            accuracy_mode=accuracy_mode,
            context_window=context_window,
        )

        fragments = 0

        try:
            for fragment in self._llm.generate_stream(
                prepared.prompt, prepared.generation_config
            ):
                on_chunk(fragment)
                fragments += 1
        except ModelError:
            raise
        except Exception as e:
            raise classify_model_error(e) from e

        logger.info(
            "Stream completed",
            extra={"fragments": fragments, "sources": len(prepared.candidates)},
        )

        return enrich_sources(prepared.candidates)

    def clear_history(self, conversation_id: str) -> None:
        self._conversations.clear(conversation_id)


def _require_question(question: Optional[str]) -> str:

    if question is None or not question.strip():
        raise InputError("Question is required")

    return question.strip()
