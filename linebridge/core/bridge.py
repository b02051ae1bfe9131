"""
Composition root for the chat bridge.

ChatBridge owns every piece of mutable state (FAQ index, conversation
memory) and wires the collaborators together, so the web layer and tests
pass one object around instead of touching module-level singletons.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import config
from linebridge.analytics.chat_logger import ChatLogger
from linebridge.core.conversation import ConversationMemory
from linebridge.core.faq_index import FaqIndex
from linebridge.core.handler import EventHandler
from linebridge.core.retriever import LexicalRetriever, SemanticRetriever
from linebridge.core.routing import AnswerMode, IntentRule, RoutingPolicy, default_rules, load_rules
from linebridge.infrastructure.handoff import HandoffNotifier
from linebridge.infrastructure.messaging import LineMessagingClient, WebhookEvent

logger = logging.getLogger(__name__)


class ChatBridge:
    """Webhook-to-reply bridge with FAQ retrieval and conversation memory."""

    def __init__(
        self,
        mode: str = "offline",
        messenger=None,
        llm=None,
        embedder=None,
        notifier=None,
        chat_logger: Optional[ChatLogger] = None,
        faq_path: Optional[Path] = None,
        rules: Optional[List[IntentRule]] = None,
        answer_mode: str = AnswerMode.GENERATE.value,
        domain_keywords: Optional[List[str]] = None,
        max_concurrency: int = config.MAX_CONCURRENT_EVENTS
    ):
        """
        Wire up the bridge.

        Args:
            mode: "online" (semantic retrieval, generation) or "offline"
                  (lexical retrieval, no model)
            messenger: Reply collaborator (default: dry-run LineMessagingClient)
            llm: Completion collaborator, ignored in offline mode
            embedder: Embedding collaborator, required for online mode
            notifier: Handoff collaborator (default: no-op HandoffNotifier)
            chat_logger: ChatLogger (default: config.CHAT_LOG_PATH)
            faq_path: Catalog file loaded by startup()/reload_faq()
            rules: Ordered intent rules (default: handoff keywords)
            answer_mode: "generate" or "direct" handling of FAQ hits
            domain_keywords: Lexical bonus keywords
            max_concurrency: Per-delivery event fan-out cap
        """
        if mode not in ("online", "offline"):
            raise ValueError(f"Unknown mode: {mode}")
        if mode == "online" and embedder is None:
            raise ValueError("Online mode requires an embedding collaborator")

        self.mode = mode
        self.faq_path = Path(faq_path) if faq_path is not None else config.FAQ_PATH
        self.llm = llm if mode == "online" else None

        self.faq_index = FaqIndex(embedder=embedder if mode == "online" else None)
        if mode == "online":
            self.retriever = SemanticRetriever(self.faq_index, embedder)
        else:
            self.retriever = LexicalRetriever(self.faq_index, keywords=domain_keywords)

        self.memory = ConversationMemory()
        self.messenger = messenger if messenger is not None else LineMessagingClient()
        self.notifier = notifier if notifier is not None else HandoffNotifier()
        self.chat_logger = chat_logger if chat_logger is not None else ChatLogger()

        self.routing = RoutingPolicy(
            retriever=self.retriever,
            memory=self.memory,
            llm=self.llm,
            rules=rules,
            answer_mode=answer_mode
        )
        self.handler = EventHandler(
            routing=self.routing,
            memory=self.memory,
            messenger=self.messenger,
            chat_logger=self.chat_logger,
            notifier=self.notifier,
            max_concurrency=max_concurrency
        )

        logger.info(f"Chat bridge initialized (mode={mode}, answers={self.routing.answer_mode.value})")

    @classmethod
    def from_config(cls) -> "ChatBridge":
        """Build a bridge from environment configuration."""
        from linebridge.infrastructure.embeddings import EmbeddingModel
        from linebridge.infrastructure.llm import LLMProvider

        for problem in config.validate_config():
            logger.warning(f"Config: {problem}")

        mode = config.BOT_MODE if config.BOT_MODE in ("online", "offline") else "online"
        llm = embedder = None
        if mode == "online":
            if config.OPENAI_API_KEY:
                llm = LLMProvider()
                embedder = EmbeddingModel()
            else:
                logger.warning("OPENAI_API_KEY missing; falling back to offline mode")
                mode = "offline"

        rules = None
        if config.INTENT_RULES_PATH:
            try:
                rules = load_rules(config.INTENT_RULES_PATH)
            except (OSError, ValueError) as e:
                logger.warning(f"Cannot load intent rules from {config.INTENT_RULES_PATH}: {e}")
                rules = default_rules()

        answer_mode = config.FAQ_ANSWER_MODE if config.FAQ_ANSWER_MODE in ("generate", "direct") else "generate"

        return cls(
            mode=mode,
            llm=llm,
            embedder=embedder,
            rules=rules,
            answer_mode=answer_mode,
            domain_keywords=config.DOMAIN_KEYWORDS,
        )

    async def startup(self) -> int:
        """Load the FAQ catalog; returns the number of entries."""
        await self.faq_index.load(self.faq_path)
        return len(self.faq_index)

    async def reload_faq(self) -> int:
        """Re-read the catalog and swap the index atomically."""
        await self.faq_index.load(self.faq_path)
        return len(self.faq_index)

    async def handle_events(self, events: List[WebhookEvent]):
        return await self.handler.handle_events(events)

    async def shutdown(self) -> None:
        """Drain handoff tasks, then close the collaborators' HTTP clients."""
        await self.handler.wait_background()
        for collaborator in (self.messenger, self.notifier):
            aclose = getattr(collaborator, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"Error closing {type(collaborator).__name__}: {e}")

    def status(self) -> Dict[str, Any]:
        """Health summary for monitoring endpoints."""
        return {
            "status": "ok",
            "mode": self.mode,
            "answer_mode": self.routing.answer_mode.value,
            "faq_items": len(self.faq_index),
            "messenger_enabled": bool(getattr(self.messenger, "enabled", True)),
            "llm_enabled": self.llm is not None,
            "handoff_enabled": bool(getattr(self.notifier, "enabled", False)),
            "active_users": len(self.memory),
            "llm_usage": self.llm.get_usage_stats() if hasattr(self.llm, "get_usage_stats") else None,
        }
