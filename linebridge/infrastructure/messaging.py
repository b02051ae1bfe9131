"""
LINE Messaging API helpers.

Provides:
- verify_signature: X-Line-Signature check (HMAC-SHA256 of the raw body, base64)
- WebhookPayload / WebhookEvent: pydantic models for inbound deliveries
- LineMessagingClient.reply_text: reply API over httpx

The reply endpoint is https://api.line.me/v2/bot/message/reply
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

import config

logger = logging.getLogger(__name__)


def compute_signature(channel_secret: str, body: bytes) -> str:
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(channel_secret: Optional[str], body: bytes, signature: Optional[str]) -> bool:
    """True only when a secret is configured and ``signature`` matches ``body``."""
    if not channel_secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(channel_secret, body), signature)


class EventSource(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


class EventMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    id: Optional[str] = None
    text: Optional[str] = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str
    message: Optional[EventMessage] = None
    source: Optional[EventSource] = None
    reply_token: Optional[str] = Field(default=None, alias="replyToken")
    timestamp: Optional[int] = None

    @property
    def is_text_message(self) -> bool:
        return self.type == "message" and self.message is not None and self.message.type == "text"

    @property
    def user_id(self) -> str:
        if self.source is not None and self.source.user_id:
            return self.source.user_id
        return "unknown"


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    destination: Optional[str] = None
    events: List[WebhookEvent] = Field(default_factory=list)


class LineMessagingClient:
    """Reply collaborator for the LINE Messaging API.

    Without an access token the client runs in dry-run mode and only logs
    the payload it would have sent.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        reply_url: str = config.LINE_REPLY_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        self.token = token if token is not None else config.LINE_CHANNEL_ACCESS_TOKEN
        self.reply_url = reply_url
        self.timeout = timeout
        self._client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def _post(self, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            logger.info("[dry-run] %s", json.dumps(payload, ensure_ascii=False))
            return
        headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}
        if self._client is None:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.reply_url, json=payload, headers=headers)
        else:
            response = await self._client.post(self.reply_url, json=payload, headers=headers)
        if response.is_error:
            logger.error("LINE reply failed - status=%s body=%s", response.status_code, response.text)
            response.raise_for_status()

    async def reply_text(self, reply_token: Optional[str], text: str) -> None:
        """
        Send a text reply for one webhook event.

        Raises:
            ValueError: If the event carried no reply token
            httpx.HTTPError: If the API call fails
        """
        if not reply_token:
            raise ValueError("Event has no reply token")
        payload = {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": text[:config.TextLimits.MAX_REPLY_CHARS]}],
        }
        await self._post(payload)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
