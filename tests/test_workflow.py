# tests/test_workflow.py
import pytest

from docchat.errors import InputError, ModelAuthError, ModelFailure, RetrievalFailure
from docchat.knowledge.snippets import RuleBasedKnowledgeProvider
from docchat.memory.conversation import ConversationStore
from docchat.memory.retriever import HybridRetriever
from docchat.memory.store import VectorIndex
from docchat.memory.types import DocumentType, ExtractedDocument, RetrievalCandidate
from docchat.prompts.system_prompts import NO_DOCUMENTS_ANSWER
from docchat.workflow.document_qa import (
    AnswerOrchestrator,
    enrich_sources,
    first_sentence,
    resolve_generation_config,
)

from conftest import ScriptedLLM, StaticKnowledge, make_chunk


HARD_HATS = "Safety policy requires hard hats on site."


def _ingest(service, *documents):
    return service.ingest([
        ExtractedDocument(content=content, source=source, document_type=DocumentType.TEXT)
        for source, content in documents
    ])


class TestEndToEndScenarios:

    def test_strict_without_documents_never_calls_model(self, orchestrator, llm, conversations):

        result = orchestrator.query("What is the policy?", accuracy_mode="strict")

        assert result == {
            "answer": NO_DOCUMENTS_ANSWER,
            "sources": [],
            "has_context": False,
            "confidence": 0,
        }
        assert llm.calls == 0
        assert conversations.get("default") == []

    def test_single_document_hard_hats(self, orchestrator, ingestion_service, vector_index):

        _ingest(ingestion_service, ("policy.txt", HARD_HATS))

        candidates = HybridRetriever(vector_index).retrieve("hard hats", "short")

        assert len(candidates) == 1
        assert candidates[0].content == HARD_HATS

        result = orchestrator.query(
            "hard hats", accuracy_mode="balanced", context_window="short"
        )

        assert result["has_context"] is True
        assert len(result["sources"]) == 1
        assert result["confidence"] >= 50

    def test_round_trip_exact_substring(self, orchestrator, ingestion_service):

        _ingest(
            ingestion_service,
            ("handbook.txt", "The emergency assembly point is the north car park."),
            ("menu.txt", "Lunch is served at noon in the canteen."),
        )

        result = orchestrator.query(
            "emergency assembly point", accuracy_mode="balanced", context_window="high"
        )

        assert result["has_context"] is True
        assert any("emergency assembly point" in s["content"] for s in result["sources"])


class TestQuery:

    def test_empty_question_rejected_before_retrieval(self, orchestrator, llm):

        for question in ("", "   ", None):
            with pytest.raises(InputError):
                orchestrator.query(question)

        assert llm.calls == 0

    def test_answer_recorded_in_history(self, orchestrator, ingestion_service, llm, conversations):

        _ingest(ingestion_service, ("policy.txt", HARD_HATS))

        orchestrator.query("hard hats?", conversation_id="c1")
        orchestrator.query("what about boots?", conversation_id="c1")

        history = conversations.get("c1")

        assert [t.content for t in history] == [
            "hard hats?", llm.answer, "what about boots?", llm.answer,
        ]
        assert "user: hard hats?" in llm.prompts[1]
        assert "Conversation History" not in llm.prompts[0]

    def test_model_failure_leaves_history_untouched(self, vector_index, conversations):

        llm = ScriptedLLM(error=RuntimeError("upstream timeout"))
        orchestrator = AnswerOrchestrator(HybridRetriever(vector_index), llm, conversations)

        with pytest.raises(ModelFailure):
            orchestrator.query("hard hats?", conversation_id="c1")

        assert conversations.get("c1") == []

    def test_credential_rejection_classified(self, vector_index):

        llm = ScriptedLLM(error=RuntimeError("API key not valid. Please pass a valid API key."))
        orchestrator = AnswerOrchestrator(HybridRetriever(vector_index), llm, ConversationStore())

        with pytest.raises(ModelAuthError) as exc:
            orchestrator.query("hard hats?")

        assert "GOOGLE_API_KEY" in str(exc.value)

    def test_retrieval_failure_degrades_to_background(self, llm, conversations, knowledge):

        class FailingIndex(VectorIndex):
            def search(self, query, k):
                raise RetrievalFailure("index unavailable")

        orchestrator = AnswerOrchestrator(
            HybridRetriever(FailingIndex(lambda: None)), llm, conversations, knowledge
        )

        result = orchestrator.query("What is ONGC?")

        assert result["has_context"] is False
        assert result["sources"] == []
        assert llm.calls == 1
        assert StaticKnowledge.BACKGROUND in llm.prompts[0]

    def test_knowledge_snippets_skipped_in_strict_mode(self, orchestrator, ingestion_service, llm):

        _ingest(ingestion_service, ("ongc.txt", "ONGC drilling report for the western field."))

        orchestrator.query("ONGC drilling", accuracy_mode="balanced")
        orchestrator.query("ONGC drilling", accuracy_mode="strict")

        assert StaticKnowledge.SNIPPET in llm.prompts[0]
        assert StaticKnowledge.SNIPPET not in llm.prompts[1]

    def test_generation_settings_follow_modes(self, orchestrator, ingestion_service, llm):

        _ingest(ingestion_service, ("policy.txt", HARD_HATS))

        orchestrator.query("hard hats", accuracy_mode="strict", context_window="short")
        orchestrator.query("hard hats", accuracy_mode="flexible", context_window="high")

        strict, flexible = llm.configs

        assert (strict.temperature, strict.top_k, strict.top_p) == (0.2, 20, 0.8)
        assert strict.max_output_tokens == 1024
        assert (flexible.temperature, flexible.top_k, flexible.top_p) == (1.0, 60, 0.95)
        assert flexible.max_output_tokens == 4096
        assert strict.candidate_count == 1


class TestStreaming:

    def test_fragments_delivered_in_order(self, vector_index, conversations, ingestion_service):

        llm = ScriptedLLM(fragments=["Hard ", "hats ", "required."])
        orchestrator = AnswerOrchestrator(HybridRetriever(vector_index), llm, conversations)
        _ingest(ingestion_service, ("policy.txt", HARD_HATS))

        received = []
        sources = orchestrator.stream_query("hard hats", on_chunk=received.append)

        assert received == ["Hard ", "hats ", "required."]
        assert len(sources) == 1
        assert sources[0]["metadata"]["source"] == "policy.txt"

    def test_streaming_does_not_touch_history(self, orchestrator, conversations):

        orchestrator.stream_query("hard hats", on_chunk=lambda _: None)

        assert conversations.get("default") == []

    def test_stream_error_is_classified(self, vector_index):

        llm = ScriptedLLM(error=RuntimeError("boom"))
        orchestrator = AnswerOrchestrator(HybridRetriever(vector_index), llm, ConversationStore())

        with pytest.raises(ModelFailure):
            orchestrator.stream_query("hard hats", on_chunk=lambda _: None)

    def test_empty_question_rejected(self, orchestrator):
        with pytest.raises(InputError):
            orchestrator.stream_query(" ", on_chunk=lambda _: None)

    def test_strict_without_documents_streams_refusal(self, vector_index, conversations):

        llm = ScriptedLLM()
        orchestrator = AnswerOrchestrator(
            HybridRetriever(vector_index),
            llm,
            conversations,
            RuleBasedKnowledgeProvider.from_file(),
        )

        orchestrator.stream_query(
            "What is the drilling policy?", on_chunk=lambda _: None, accuracy_mode="strict"
        )

        prompt = llm.prompts[0]
        assert "Do not answer the question from general knowledge" in prompt
        assert "ONGC" not in prompt
        assert "Knowledge Base Context" not in prompt

    def test_no_documents_uses_background_prompt(self, orchestrator, llm):

        orchestrator.stream_query("What is ONGC?", on_chunk=lambda _: None, accuracy_mode="balanced")

        prompt = llm.prompts[0]
        assert StaticKnowledge.BACKGROUND in prompt
        assert StaticKnowledge.SNIPPET not in prompt
        assert "Knowledge Base Context" not in prompt


class TestSourcePackaging:

    def test_long_content_preview_truncated(self):

        content = "First sentence here. " + "x" * 400
        sources = enrich_sources([RetrievalCandidate(make_chunk(content), 0.87654)])

        source = sources[0]
        assert source["id"] == 1
        assert source["content"] == content[:300] + "..."
        assert source["preview"] == "First sentence here"
        assert source["metadata"]["relevance_score"] == 0.877
        assert source["metadata"]["type"] == "text"

    def test_short_content_not_truncated(self):

        sources = enrich_sources([RetrievalCandidate(make_chunk(HARD_HATS), 1.0)])

        assert sources[0]["content"] == HARD_HATS

    def test_first_sentence_fallback(self):
        assert first_sentence("...leading punctuation") == "...leading punctuation"[:100]

    def test_unknown_modes_use_defaults(self):

        config = resolve_generation_config("wild", "huge")

        assert config.temperature == 0.6
        assert config.max_output_tokens == 2048


class TestIngestion:

    def test_batch_reports_each_file(self, ingestion_service):

        result = ingestion_service.ingest_files([
            ("policy.txt", HARD_HATS.encode("utf-8")),
            ("notes.docx", b"binary"),
            ("broken.txt", b"\xff\xfe\xfa"),
        ])

        files = {f["filename"]: f for f in result["files"]}

        assert result["message"] == "Processed 1 of 3 files"
        assert result["total_chunks"] == 1
        assert files["policy.txt"]["success"] is True
        assert files["policy.txt"]["chunks_added"] == 1
        assert "Unsupported file type" in files["notes.docx"]["error"]
        assert files["broken.txt"]["success"] is False

    def test_embedding_failure_isolated_per_file(self, ingestion_service, embedder, monkeypatch):

        calls = []

        def flaky(texts):
            calls.append(texts)
            if len(calls) == 1:
                raise RuntimeError("quota exceeded")
            return [[1.0] + [0.0] * (embedder.dimension - 1) for _ in texts]

        monkeypatch.setattr(embedder, "_embed_batch", flaky)

        result = ingestion_service.ingest_files([
            ("a.txt", b"first file"),
            ("b.txt", b"second file"),
        ])

        assert [f["success"] for f in result["files"]] == [False, True]
        assert "quota exceeded" in result["files"][0]["error"]

    def test_clear_all_and_list(self, ingestion_service):

        _ingest(ingestion_service, ("a.txt", "alpha"), ("b.txt", "beta"))

        assert {s.name for s in ingestion_service.list_sources()} == {"a.txt", "b.txt"}
        assert ingestion_service.clear_all() is True
        assert ingestion_service.list_sources() == []
