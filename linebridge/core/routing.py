"""
Per-message routing policy.

Rules are evaluated in strict priority order, first match wins:

1. Intent rules (ordered (pattern, action) pairs, e.g. human handoff)
2. FAQ hits -> synthesized offline answer or FAQ-grounded generation
3. No hits -> model-only answer, or keyword guidance when no model is configured

The policy is one-shot: it reads conversation memory but never writes it.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import json
import logging
import re

import config
from linebridge.core.conversation import ConversationMemory
from linebridge.core.retriever import RetrievalHit
from linebridge.core.text import truncate_reply

logger = logging.getLogger(__name__)

Messages = config.Messages


class Route(str, Enum):
    """Route recorded in the chat log for each reply."""
    HANDOFF = "handoff"
    FAQ_OFFLINE = "faq-offline"
    FAQ_AI = "faq+ai"
    AI = "ai"
    NOHIT = "nohit"


class AnswerMode(str, Enum):
    """How FAQ hits turn into a reply."""
    GENERATE = "generate"
    DIRECT = "direct"


INTENT_ACTIONS = {"handoff"}


@dataclass(frozen=True)
class IntentRule:
    """A (pattern, action) pair checked before FAQ retrieval."""
    pattern: "re.Pattern"
    action: str = "handoff"

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


@dataclass
class RouteResult:
    """Outcome of routing one message."""
    route: Route
    reply: str
    hits: List[RetrievalHit] = field(default_factory=list)

    @property
    def handoff(self) -> bool:
        return self.route == Route.HANDOFF

    def hits_for_log(self) -> Optional[List[Dict]]:
        """Hit summary for the chat log, or None when no hits were used."""
        if not self.hits:
            return None
        return [{"question": h.entry.question, "score": round(h.score, 3)} for h in self.hits]


def keyword_rule(keywords: Sequence[str], action: str = "handoff") -> IntentRule:
    """Build a case-insensitive rule matching any of ``keywords`` literally."""
    if action not in INTENT_ACTIONS:
        raise ValueError(f"Unknown intent action: {action}")
    alternation = "|".join(re.escape(kw) for kw in keywords if kw)
    if not alternation:
        raise ValueError("Keyword rule needs at least one keyword")
    return IntentRule(pattern=re.compile(alternation, re.IGNORECASE), action=action)


def load_rules(source: Union[str, Path]) -> List[IntentRule]:
    """
    Load intent rules from a JSON file.

    The file holds an ordered array of ``{"pattern": <regex>, "action": "handoff"}``
    or ``{"keywords": [...], "action": "handoff"}`` objects.

    Raises:
        ValueError: On unknown actions, invalid regexes or malformed records
    """
    with open(source, "r", encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise ValueError("Intent rules must be a JSON array")

    rules = []
    for record in records:
        action = record.get("action", "handoff")
        if "keywords" in record:
            rules.append(keyword_rule(record["keywords"], action))
            continue
        if action not in INTENT_ACTIONS:
            raise ValueError(f"Unknown intent action: {action}")
        try:
            pattern = re.compile(record["pattern"], re.IGNORECASE)
        except (KeyError, TypeError, re.error) as e:
            raise ValueError(f"Invalid intent rule {record!r}: {e}") from e
        rules.append(IntentRule(pattern=pattern, action=action))
    return rules


def default_rules() -> List[IntentRule]:
    return [keyword_rule(config.HANDOFF_KEYWORDS, "handoff")]


def format_faq_context(hits: Sequence[RetrievalHit]) -> str:
    """Render FAQ hits as reference material for the model."""
    blocks = [
        f"【FAQ#{i}（相似度 {hit.score:.2f}）】\nQ: {hit.entry.question}\nA: {hit.entry.answer}"
        for i, hit in enumerate(hits, 1)
    ]
    return "\n\n".join(blocks)


def snippet(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit] + "…"


def synthesize_offline_answer(hits: Sequence[RetrievalHit]) -> str:
    """
    Build a reply from FAQ hits without a language model.

    The top hit's answer is quoted in full; remaining hits follow as
    further-reading snippets.
    """
    top, rest = hits[0], hits[1:]
    parts = [f"{Messages.OFFLINE_ANSWER_HEADER}\n{top.entry.answer}"]
    if rest:
        lines = [f"• {h.entry.question}：{snippet(h.entry.answer)}" for h in rest]
        parts.append(Messages.OFFLINE_FURTHER_READING + "\n" + "\n".join(lines))
    return truncate_reply("\n\n".join(parts))


class RoutingPolicy:
    """Decides how to answer one normalized message.

    Attributes:
        retriever: Lexical or semantic retriever (``async search(query, top_k)``)
        memory: Conversation memory, read for model context only
        llm: Completion collaborator (``async complete(messages)``) or None
        rules: Ordered intent rules evaluated before retrieval
        answer_mode: GENERATE (faq+ai) or DIRECT (faq-offline) for FAQ hits
    """

    def __init__(
        self,
        retriever,
        memory: ConversationMemory,
        llm=None,
        rules: Optional[List[IntentRule]] = None,
        answer_mode: Union[AnswerMode, str] = AnswerMode.GENERATE,
        top_k: int = config.FAQ_TOP_K,
        context_turns: int = config.MemoryLimits.CONTEXT_TURNS,
        system_prompt: str = Messages.SYSTEM_PROMPT
    ):
        self.retriever = retriever
        self.memory = memory
        self.llm = llm
        self.rules = default_rules() if rules is None else list(rules)
        self.answer_mode = AnswerMode(answer_mode)
        self.top_k = top_k
        self.context_turns = context_turns
        self.system_prompt = system_prompt

        # Without a model, FAQ hits can only be answered directly
        if self.llm is None and self.answer_mode == AnswerMode.GENERATE:
            self.answer_mode = AnswerMode.DIRECT

    def match_intent(self, text: str) -> Optional[IntentRule]:
        """First rule matching ``text``, or None."""
        for rule in self.rules:
            if rule.matches(text):
                return rule
        return None

    async def route(self, user_id: str, text: str) -> RouteResult:
        """
        Route one message and produce the reply text.

        Args:
            user_id: Sender, used to look up conversation history
            text: Normalized message text

        Returns:
            RouteResult with the route taken, reply and FAQ hits used
        """
        rule = self.match_intent(text)
        if rule is not None and rule.action == "handoff":
            logger.info(f"Handoff requested by {user_id}")
            return RouteResult(route=Route.HANDOFF, reply=Messages.HANDOFF_ACK)

        hits = await self.retriever.search(text, self.top_k)

        if hits:
            if self.answer_mode == AnswerMode.DIRECT:
                return RouteResult(route=Route.FAQ_OFFLINE, reply=synthesize_offline_answer(hits), hits=hits)
            messages = self.build_messages(user_id, text, hits)
            return RouteResult(route=Route.FAQ_AI, reply=await self.generate(messages), hits=hits)

        if self.llm is not None:
            messages = self.build_messages(user_id, text)
            return RouteResult(route=Route.AI, reply=await self.generate(messages))

        return RouteResult(route=Route.NOHIT, reply=Messages.NO_HIT_GUIDANCE)

    def build_messages(self, user_id: str, text: str, hits: Sequence[RetrievalHit] = ()) -> List[Dict[str, str]]:
        """System instruction, recent history, FAQ reference (if any), then the user message."""
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(self.memory.recent(user_id, self.context_turns))
        if hits:
            messages.append({
                "role": "system",
                "content": f"{Messages.FAQ_CONTEXT_HEADER}\n\n{format_faq_context(hits)}"
            })
        messages.append({"role": "user", "content": text})
        return messages

    async def generate(self, messages: List[Dict[str, str]]) -> str:
        """Call the completion collaborator; failures become the busy apology."""
        try:
            answer = await self.llm.complete(messages)
        except Exception as e:
            logger.error(f"Completion failed: {e}")
            return Messages.BUSY_APOLOGY

        if not answer:
            return Messages.EMPTY_COMPLETION
        return truncate_reply(answer)
