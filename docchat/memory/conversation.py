# docchat/memory/conversation.py

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List

from docchat.config import MAX_HISTORY_TURNS

logger = logging.getLogger(__name__)

USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in (USER, ASSISTANT):
            raise ValueError(f"Unknown conversation role: {self.role}")


class ConversationStore:
    """
    Bounded message history per conversation id.

    Whenever a conversation grows past max_turns, the oldest two turns
    (one user/assistant exchange) are evicted. Each conversation has its
    own lock; histories of different conversations never share state.
    """

    def __init__(self, max_turns: int = MAX_HISTORY_TURNS):

        self._max_turns = max_turns
        self._histories: Dict[str, List[ConversationTurn]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, conversation_id: str) -> threading.Lock:

        with self._registry_lock:

            lock = self._locks.get(conversation_id)

            if lock is None:
                lock = self._locks[conversation_id] = threading.Lock()

            return lock

    def _append_locked(self, conversation_id: str, turn: ConversationTurn):

        history = self._histories.setdefault(conversation_id, [])
        history.append(turn)

        while len(history) > self._max_turns:
            del history[:2]

    def append(self, conversation_id: str, turn: ConversationTurn) -> None:

        with self._lock_for(conversation_id):
            self._append_locked(conversation_id, turn)

    def append_exchange(
        self,
        conversation_id: str,
        question: str,
        answer: str,
    ) -> None:
        """Append a question and its answer as one uninterrupted pair."""

        with self._lock_for(conversation_id):
            self._append_locked(conversation_id, ConversationTurn(USER, question))
            self._append_locked(conversation_id, ConversationTurn(ASSISTANT, answer))

    def get(self, conversation_id: str) -> List[ConversationTurn]:

        with self._lock_for(conversation_id):
            return list(self._histories.get(conversation_id, []))

    def clear(self, conversation_id: str) -> None:

        with self._lock_for(conversation_id):
            self._histories.pop(conversation_id, None)

        logger.info(
            "Conversation history cleared",
            extra={"conversation_id": conversation_id},
        )
