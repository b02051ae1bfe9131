"""Best-effort notification to staff when a user asks for a human agent."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

import config

log = logging.getLogger(__name__)


class HandoffNotifier:
    """POSTs ``{userId, text, timestamp}`` as JSON to the handoff endpoint.

    An empty URL makes ``notify`` a silent no-op. Failures are logged and
    swallowed; the user has already received the acknowledgment.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0
    ):
        self.url = url if url is not None else config.HANDOFF_WEBHOOK_URL
        self.timeout = timeout
        self._client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def notify(self, user_id: str, text: str, timestamp: Optional[int] = None) -> bool:
        """
        Send one handoff notification.

        Returns:
            True if the endpoint accepted it, False if skipped or failed
        """
        if not self.enabled:
            return False

        payload: Dict[str, Any] = {
            "userId": user_id,
            "text": text,
            "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        }
        try:
            if self._client is None:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.url, json=payload)
            else:
                resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
        except Exception as e:
            log.warning(f"handoff notify failed: {e}")
            return False

        log.info(f"Handoff notification sent for {user_id}")
        return True

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
