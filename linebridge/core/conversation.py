"""
Per-user conversation memory for building model context.

Memory lives in the process only and is lost on restart. Each user keeps at
most ``max_turns`` turns (oldest evicted first); routing only ever sees the
last ``context_turns`` of them.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List
import logging
import time

import config

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ConversationTurn:
    """One message in a user's conversation."""
    role: str
    content: str
    timestamp: int  # epoch milliseconds


def now_ms() -> int:
    return int(time.time() * 1000)


class ConversationMemory:
    """Manages per-user conversation history with a FIFO cap."""

    def __init__(
        self,
        max_turns: int = config.MemoryLimits.MAX_TURNS,
        context_turns: int = config.MemoryLimits.CONTEXT_TURNS
    ):
        """
        Initialize conversation memory.

        Args:
            max_turns: Hard cap of turns retained per user
            context_turns: Default number of turns returned by recent()
        """
        self.max_turns = max_turns
        self.context_turns = context_turns
        self.history: Dict[str, Deque[ConversationTurn]] = {}

    def push(self, user_id: str, role: str, content: str) -> ConversationTurn:
        """
        Append a turn for ``user_id``, evicting the oldest turns past the cap.

        Identical consecutive pushes are stored as separate turns.

        Args:
            user_id: Messaging-platform user identifier
            role: "user" or "assistant"
            content: Message text

        Returns:
            The stored ConversationTurn
        """
        if role not in ROLES:
            raise ValueError(f"Unsupported conversation role: {role}")

        turns = self.history.get(user_id)
        if turns is None:
            turns = deque(maxlen=self.max_turns)
            self.history[user_id] = turns

        turn = ConversationTurn(role=role, content=content, timestamp=now_ms())
        turns.append(turn)
        logger.debug(f"Added turn to memory for {user_id}. Total turns: {len(turns)}")
        return turn

    def recent(self, user_id: str, limit: int = None) -> List[Dict[str, str]]:
        """
        Last ``limit`` turns for ``user_id``, oldest first, as LLM messages.

        Returns:
            List of message dicts with 'role' and 'content'
        """
        if limit is None:
            limit = self.context_turns
        turns = self.history.get(user_id)
        if not turns or limit <= 0:
            return []
        return [{"role": t.role, "content": t.content} for t in list(turns)[-limit:]]

    def turns(self, user_id: str) -> List[ConversationTurn]:
        """All retained turns for ``user_id`` (oldest first)."""
        return list(self.history.get(user_id, ()))

    def clear(self, user_id: str = None):
        """Forget one user's history, or everyone's when ``user_id`` is None."""
        if user_id is None:
            self.history.clear()
            logger.info("Conversation memory cleared")
        else:
            self.history.pop(user_id, None)

    def __len__(self) -> int:
        return len(self.history)
