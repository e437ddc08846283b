# tests/test_prompts.py
import json

import pytest

from docchat.knowledge.snippets import NullKnowledgeProvider, RuleBasedKnowledgeProvider
from docchat.memory.conversation import ASSISTANT, USER, ConversationTurn
from docchat.memory.types import DocumentType, RetrievalCandidate
from docchat.prompts.context import assemble_context, resolve_chunk_count
from docchat.prompts.prompt_builder import PromptBuilder
from docchat.prompts.system_prompts import (
    ACCURACY_INSTRUCTIONS,
    LANGUAGE_INSTRUCTIONS,
    LENGTH_GUIDANCE,
    PERSONA_PROMPT,
)

from conftest import StaticKnowledge, make_chunk


class TestContextAssembly:

    @pytest.mark.parametrize(
        "window, expected",
        [("short", 4), ("medium", 8), ("high", 15), (None, 8), ("huge", 8)],
    )
    def test_chunk_count_per_window(self, window, expected):
        assert resolve_chunk_count(window) == expected

    def test_labeled_blocks(self):

        candidates = [
            RetrievalCandidate(make_chunk("First passage."), 0.9),
            RetrievalCandidate(
                make_chunk("Row | data", source="sheet.xlsx", document_type=DocumentType.SPREADSHEET),
                0.8,
            ),
        ]

        assert assemble_context(candidates) == (
            "[Document 1] (Source: notes.txt, Type: text)\nFirst passage.\n---"
            "\n\n"
            "[Document 2] (Source: sheet.xlsx, Type: spreadsheet)\nRow | data\n---"
        )

    def test_no_candidates_is_empty(self):
        assert assemble_context([]) == ""


class TestPromptBuilder:

    def test_strict_without_context_refuses(self):

        prompt = PromptBuilder(StaticKnowledge()).build(
            "What is ONGC?", "", accuracy_mode="strict"
        )

        assert "What is ONGC?" in prompt
        assert "Do not answer the question from general knowledge" in prompt
        assert StaticKnowledge.BACKGROUND not in prompt
        assert prompt.endswith("Answer:")

    def test_background_used_without_context(self):

        prompt = PromptBuilder(StaticKnowledge()).build(
            "What is ONGC?", "   ", accuracy_mode="flexible", context_window="high"
        )

        assert StaticKnowledge.BACKGROUND in prompt
        assert ACCURACY_INSTRUCTIONS["flexible"] in prompt
        assert LENGTH_GUIDANCE["high"] in prompt

    def test_grounded_prompt_layout(self):

        history = [
            ConversationTurn(USER, "Who signs off permits?"),
            ConversationTurn(ASSISTANT, "The site manager."),
        ]

        prompt = PromptBuilder().build(
            "And who audits them?",
            "[Document 1] (Source: a.txt, Type: text)\nAudits are quarterly.\n---",
            history=history,
            accuracy_mode="strict",
            context_window="short",
        )

        assert prompt.startswith(PERSONA_PROMPT + ACCURACY_INSTRUCTIONS["strict"] + LENGTH_GUIDANCE["short"])
        assert "Conversation History:\nuser: Who signs off permits?\nassistant: The site manager.\n" in prompt
        assert "Knowledge Base Context:\n[Document 1]" in prompt
        assert "Current Question: And who audits them?" in prompt
        assert prompt.endswith(LANGUAGE_INSTRUCTIONS["english"] + "\n\nAnswer:")

        assert prompt.index("Conversation History") < prompt.index("Knowledge Base Context")
        assert prompt.index("Knowledge Base Context") < prompt.index("Current Question")

    def test_no_history_section_for_new_conversation(self):

        prompt = PromptBuilder().build("Q?", "some context")

        assert "Conversation History" not in prompt

    def test_hindi_directive(self):

        prompt = PromptBuilder().build("Q?", "some context", language="hindi")

        assert "Devanagari" in prompt
        assert LANGUAGE_INSTRUCTIONS["english"] not in prompt

    def test_unknown_modes_fall_back_to_defaults(self):

        prompt = PromptBuilder().build(
            "Q?", "ctx", language="klingon", accuracy_mode="wild", context_window="huge"
        )

        assert ACCURACY_INSTRUCTIONS["balanced"] in prompt
        assert LENGTH_GUIDANCE["medium"] in prompt
        assert LANGUAGE_INSTRUCTIONS["english"] in prompt


class TestKnowledgeProvider:

    def test_rules_match_case_insensitively(self):

        provider = RuleBasedKnowledgeProvider(
            title="Background",
            overview=["line one", "line two"],
            rules=[("drilling|field", ["Drilling snippet."]), ("safety", ["Safety snippet."])],
        )

        assert provider.lookup("Where is the DRILLING site?") == "\n\nBackground:\nDrilling snippet.\n"
        assert provider.lookup("nothing here") == ""
        assert provider.full_background() == "\nline one\nline two\n"

    def test_every_matching_rule_contributes(self):

        provider = RuleBasedKnowledgeProvider(
            title="Background",
            overview=[],
            rules=[("field", ["A."]), ("safety", ["B."])],
        )

        assert provider.lookup("field safety") == "\n\nBackground:\nA.\n\nB.\n"

    def test_bundled_knowledge_loads(self):

        provider = RuleBasedKnowledgeProvider.from_file()

        assert isinstance(provider, RuleBasedKnowledgeProvider)
        assert "ONGC" in provider.lookup("Tell me about ONGC")
        assert "ONGC" in provider.full_background()

    def test_missing_file_yields_empty_provider(self, tmp_path):

        provider = RuleBasedKnowledgeProvider.from_file(str(tmp_path / "missing.json"))

        assert isinstance(provider, NullKnowledgeProvider)
        assert provider.lookup("anything") == ""

    def test_bad_pattern_yields_empty_provider(self, tmp_path):

        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"rules": [{"pattern": "(unclosed", "snippets": ["x"]}]}))

        assert isinstance(RuleBasedKnowledgeProvider.from_file(str(path)), NullKnowledgeProvider)
