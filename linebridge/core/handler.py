"""
Webhook event handling: normalize -> route -> reply -> record.

One webhook delivery may carry several events. They are handled as
concurrently started tasks (bounded by a semaphore) and joined before the
webhook is acknowledged. A failure in one event is converted into an apology
reply and never aborts the rest of the batch.
"""

import asyncio
import logging
from typing import Awaitable, Iterable, List, Optional, Set

import config
from linebridge.analytics.chat_logger import ChatLogger
from linebridge.core.conversation import ConversationMemory
from linebridge.core.routing import RouteResult, RoutingPolicy
from linebridge.core.text import normalize
from linebridge.infrastructure.messaging import WebhookEvent

logger = logging.getLogger(__name__)


class EventHandler:
    """Orchestrates one message event end to end.

    Owns conversation memory writes; the routing policy only reads it.
    Handoff notifications run as detached background tasks that the reply
    path never awaits.
    """

    def __init__(
        self,
        routing: RoutingPolicy,
        memory: ConversationMemory,
        messenger,
        chat_logger: ChatLogger,
        notifier=None,
        max_concurrency: int = config.MAX_CONCURRENT_EVENTS
    ):
        """
        Initialize the handler.

        Args:
            routing: RoutingPolicy deciding each reply
            memory: ConversationMemory updated after every reply
            messenger: Reply collaborator (``async reply_text(token, text)``)
            chat_logger: ChatLogger for inbound/outbound records
            notifier: Optional handoff collaborator (``async notify(user_id, text)``)
            max_concurrency: Maximum events of one delivery handled at once
        """
        self.routing = routing
        self.memory = memory
        self.messenger = messenger
        self.chat_logger = chat_logger
        self.notifier = notifier
        self.max_concurrency = max(1, max_concurrency)
        self._background: Set[asyncio.Task] = set()

    async def handle_events(self, events: Iterable[WebhookEvent]) -> List[Optional[RouteResult]]:
        """Handle every event of one delivery; results are in event order."""
        events = list(events)
        if not events:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(event: WebhookEvent) -> Optional[RouteResult]:
            async with semaphore:
                return await self.handle_event(event)

        return list(await asyncio.gather(*(bounded(e) for e in events)))

    async def handle_event(self, event: WebhookEvent) -> Optional[RouteResult]:
        """
        Handle a single event.

        Non-text events are ignored. Any failure is logged and answered with
        the busy apology; nothing propagates to the HTTP layer.

        Returns:
            RouteResult for handled messages, None if ignored or failed
        """
        try:
            if not event.is_text_message:
                return None

            user_id = event.user_id
            user_text = normalize(event.message.text)

            await self.chat_logger.log_inbound(user_id, user_text)

            result = await self.routing.route(user_id, user_text)
            await self.messenger.reply_text(event.reply_token, result.reply)

            if result.handoff and self.notifier is not None:
                self.spawn_background(self.notifier.notify(user_id, user_text))

            self.memory.push(user_id, "user", user_text)
            self.memory.push(user_id, "assistant", result.reply)
            await self.chat_logger.log_outbound(
                user_id, result.reply, result.route.value, result.hits_for_log()
            )
            logger.info(f"Replied to {user_id} via route '{result.route.value}'")
            return result

        except Exception:
            logger.exception("Event handling failed")
            try:
                await self.messenger.reply_text(event.reply_token, config.Messages.BUSY_APOLOGY)
            except Exception as e:
                logger.warning(f"Apology reply failed: {e}")
            return None

    def spawn_background(self, coro: Awaitable) -> asyncio.Task:
        """Run ``coro`` detached; failures are logged, never raised."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Background task failed: {exc}")

    async def wait_background(self) -> None:
        """Wait for outstanding background tasks (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
