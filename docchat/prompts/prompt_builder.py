# docchat/prompts/prompt_builder.py

from typing import Optional, Sequence

from docchat.config import DEFAULT_ACCURACY_MODE, DEFAULT_CONTEXT_WINDOW
from docchat.knowledge.snippets import KnowledgeSnippetProvider, NullKnowledgeProvider
from docchat.memory.conversation import ConversationTurn
from docchat.prompts.system_prompts import (
    ACCURACY_INSTRUCTIONS,
    BACKGROUND_NO_CONTEXT_PROMPT,
    GROUNDED_ANSWER_INSTRUCTIONS,
    LANGUAGE_INSTRUCTIONS,
    LENGTH_GUIDANCE,
    PERSONA_PROMPT,
    STRICT_NO_CONTEXT_PROMPT,
)


def language_instruction(language: str) -> str:
    return LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS["english"])


def accuracy_instruction(accuracy_mode: str, context_window: str) -> str:
    """Accuracy block followed by the advisory length clause."""

    return ACCURACY_INSTRUCTIONS.get(
        accuracy_mode, ACCURACY_INSTRUCTIONS[DEFAULT_ACCURACY_MODE]
    ) + LENGTH_GUIDANCE.get(context_window, LENGTH_GUIDANCE[DEFAULT_CONTEXT_WINDOW])


def render_history(history: Sequence[ConversationTurn]) -> str:

    if not history:
        return ""

    lines = "\n".join(f"{turn.role}: {turn.content}" for turn in history)

    return f"\nConversation History:\n{lines}\n"


class PromptBuilder:
    """Composes the instruction text sent to the generative model."""

    def __init__(self, knowledge: Optional[KnowledgeSnippetProvider] = None):
        self._knowledge = knowledge or NullKnowledgeProvider()

    def build(
        self,
        question: str,
        context: str,
        history: Sequence[ConversationTurn] = (),
        language: str = "english",
        accuracy_mode: str = DEFAULT_ACCURACY_MODE,
        context_window: str = DEFAULT_CONTEXT_WINDOW,
    ) -> str:

        lang = language_instruction(language)
        accuracy = accuracy_instruction(accuracy_mode, context_window)

        if not context or not context.strip():

            if accuracy_mode == "strict":
                return STRICT_NO_CONTEXT_PROMPT.format(
                    question=question,
                    language_instruction=lang,
                )

            return BACKGROUND_NO_CONTEXT_PROMPT.format(
                question=question,
                background=self._knowledge.full_background(),
                language_instruction=lang,
                accuracy_instruction=accuracy,
            )

        return f"""{PERSONA_PROMPT}{accuracy}

{render_history(history)}
Knowledge Base Context:
{context}

Current Question: {question}

{GROUNDED_ANSWER_INSTRUCTIONS}{lang}

Answer:"""
