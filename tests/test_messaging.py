import base64
import hashlib
import hmac
import json

import httpx
import pytest

from linebridge.infrastructure.handoff import HandoffNotifier
from linebridge.infrastructure.messaging import (
    LineMessagingClient,
    WebhookPayload,
    compute_signature,
    verify_signature,
)


def test_signature_matches_hmac_sha256_base64():
    body = '{"events":[]}'.encode("utf-8")
    expected = base64.b64encode(hmac.new(b"secret", body, hashlib.sha256).digest()).decode()

    assert compute_signature("secret", body) == expected
    assert verify_signature("secret", body, expected)
    assert not verify_signature("secret", body + b" ", expected)
    assert not verify_signature("secret", body, None)
    assert not verify_signature("", body, expected)


def test_payload_parsing_keeps_unknown_fields():
    payload = WebhookPayload.model_validate_json(json.dumps({
        "destination": "Ubot",
        "events": [{
            "type": "message",
            "mode": "active",
            "replyToken": "r1",
            "source": {"type": "user", "userId": "U1"},
            "message": {"type": "text", "id": "1", "text": "hi", "quoteToken": "q"},
        }],
    }))

    event = payload.events[0]
    assert event.is_text_message
    assert event.reply_token == "r1"
    assert event.user_id == "U1"
    assert event.message.text == "hi"


def _recording_client(status_code=200):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(status_code, json={})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), requests


@pytest.mark.asyncio
async def test_reply_posts_bearer_request():
    http_client, requests = _recording_client()
    client = LineMessagingClient(token="access", reply_url="https://line.test/reply", http_client=http_client)

    await client.reply_text("r1", "字" * 6000)
    await client.aclose()

    request = requests[0]
    assert request.url == "https://line.test/reply"
    assert request.headers["Authorization"] == "Bearer access"
    body = json.loads(request.content)
    assert body["replyToken"] == "r1"
    assert body["messages"][0]["type"] == "text"
    assert len(body["messages"][0]["text"]) == 4900


@pytest.mark.asyncio
async def test_reply_error_status_raises():
    http_client, _ = _recording_client(status_code=400)
    client = LineMessagingClient(token="access", http_client=http_client)

    with pytest.raises(httpx.HTTPStatusError):
        await client.reply_text("r1", "hi")


@pytest.mark.asyncio
async def test_dry_run_without_token_sends_nothing():
    http_client, requests = _recording_client()
    client = LineMessagingClient(token="", http_client=http_client)

    assert not client.enabled
    await client.reply_text("r1", "hi")
    assert requests == []


@pytest.mark.asyncio
async def test_missing_reply_token_raises():
    client = LineMessagingClient(token="")
    with pytest.raises(ValueError):
        await client.reply_text(None, "hi")


@pytest.mark.asyncio
async def test_handoff_notification_payload():
    http_client, requests = _recording_client()
    notifier = HandoffNotifier(url="https://crm.test/handoff", http_client=http_client)

    assert await notifier.notify("U1", "真人客服", timestamp=1700000000000) is True
    assert json.loads(requests[0].content) == {
        "userId": "U1",
        "text": "真人客服",
        "timestamp": 1700000000000,
    }


@pytest.mark.asyncio
async def test_handoff_failure_is_swallowed():
    http_client, _ = _recording_client(status_code=503)
    notifier = HandoffNotifier(url="https://crm.test/handoff", http_client=http_client)
    assert await notifier.notify("U1", "真人") is False

    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    offline = HandoffNotifier(
        url="https://crm.test/handoff",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)),
    )
    assert await offline.notify("U1", "真人") is False


@pytest.mark.asyncio
async def test_handoff_disabled_without_url():
    http_client, requests = _recording_client()
    notifier = HandoffNotifier(url="", http_client=http_client)

    assert not notifier.enabled
    assert await notifier.notify("U1", "真人") is False
    assert requests == []
