import json

import httpx
import pytest
from fastapi.testclient import TestClient

import config
from linebridge.api.server import create_app
from linebridge.core.bridge import ChatBridge
from linebridge.infrastructure.handoff import HandoffNotifier
from linebridge.infrastructure.messaging import LineMessagingClient, compute_signature
from tests.conftest import MACOS_FAQ, QUOTE_FAQ, FakeEmbedder, FakeLLM, FakeMessenger, FakeNotifier

SECRET = "test-channel-secret"


def _delivery(*texts):
    events = [
        {
            "type": "message",
            "replyToken": f"token-{i}",
            "source": {"type": "user", "userId": f"U{i}"},
            "message": {"type": "text", "id": str(i), "text": text},
        }
        for i, text in enumerate(texts)
    ]
    return json.dumps({"destination": "Ubot", "events": events}, ensure_ascii=False).encode("utf-8")


def _post(client, body, secret=SECRET):
    headers = {"Content-Type": "application/json"}
    if secret is not None:
        headers["X-Line-Signature"] = compute_signature(secret, body)
    return client.post("/webhook", content=body, headers=headers)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def bridge(write_faq, chat_logger, messenger):
    return ChatBridge(
        mode="offline",
        messenger=messenger,
        notifier=FakeNotifier(),
        chat_logger=chat_logger,
        faq_path=write_faq([QUOTE_FAQ, MACOS_FAQ]),
    )


@pytest.fixture
def client(bridge):
    with TestClient(create_app(bridge, channel_secret=SECRET)) as test_client:
        yield test_client


def test_probes(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.text == "OK"

    assert client.get("/webhook").text == "OK"
    assert client.head("/webhook").status_code == 200


def test_healthz_reports_catalog(client):
    body = client.get("/healthz").json()
    assert body["status"] == "ok"
    assert body["mode"] == "offline"
    assert body["answer_mode"] == "direct"
    assert body["faq_items"] == 2
    assert body["llm_enabled"] is False


def test_missing_signature_is_rejected(client, messenger):
    response = _post(client, _delivery("報價"), secret=None)
    assert response.status_code == 401
    assert response.text == "Bad signature"
    assert messenger.replies == []


def test_wrong_signature_is_rejected(client):
    response = _post(client, _delivery("報價"), secret="someone-else")
    assert response.status_code == 401


def test_signed_malformed_body_is_bad_request(client):
    response = _post(client, b"{not json")
    assert response.status_code == 400
    assert response.text == "Bad request"


def test_empty_events_acknowledged(client, messenger):
    response = _post(client, b'{"destination": "Ubot", "events": []}')
    assert response.status_code == 200
    assert messenger.replies == []


def test_signed_text_event_gets_faq_reply(client, messenger, chat_logger):
    response = _post(client, _delivery("請問報價流程"))

    assert response.status_code == 200
    assert len(messenger.replies) == 1
    token, text = messenger.replies[0]
    assert token == "token-0"
    assert text.startswith("【參考回答】")

    records = chat_logger.read_records()
    assert [r["direction"] for r in records] == ["in", "out"]
    assert records[1]["route"] == "faq-offline"


def test_batch_delivery_replies_to_every_event(client, messenger):
    response = _post(client, _delivery("請問報價流程", "我要真人客服", "weather"))

    assert response.status_code == 200
    replies = dict(messenger.replies)
    assert set(replies) == {"token-0", "token-1", "token-2"}
    assert replies["token-1"] == config.Messages.HANDOFF_ACK
    assert replies["token-2"] == config.Messages.NO_HIT_GUIDANCE


def test_faq_reload(client, bridge, write_faq):
    write_faq([QUOTE_FAQ])
    response = client.post("/admin/faq/reload")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "items": 1}
    assert len(bridge.faq_index) == 1


def test_completion_failure_still_acknowledged(write_faq, chat_logger):
    messenger = FakeMessenger()
    bridge = ChatBridge(
        mode="online",
        messenger=messenger,
        llm=FakeLLM(error=RuntimeError("upstream down")),
        embedder=FakeEmbedder(),
        notifier=FakeNotifier(),
        chat_logger=chat_logger,
        faq_path=write_faq([QUOTE_FAQ]),
    )

    with TestClient(create_app(bridge, channel_secret=SECRET)) as client:
        response = _post(client, _delivery("報價怎麼算"))

    assert response.status_code == 200
    assert messenger.replies == [("token-0", config.Messages.BUSY_APOLOGY)]


def test_online_mode_requires_embedder():
    with pytest.raises(ValueError):
        ChatBridge(mode="online", messenger=FakeMessenger())


@pytest.mark.asyncio
async def test_shutdown_closes_http_clients(write_faq, chat_logger):
    def ok(request):
        return httpx.Response(200, json={})

    reply_client = httpx.AsyncClient(transport=httpx.MockTransport(ok))
    handoff_client = httpx.AsyncClient(transport=httpx.MockTransport(ok))
    bridge = ChatBridge(
        mode="offline",
        messenger=LineMessagingClient(token="access", http_client=reply_client),
        notifier=HandoffNotifier(url="https://crm.test/handoff", http_client=handoff_client),
        chat_logger=chat_logger,
        faq_path=write_faq([QUOTE_FAQ]),
    )

    await bridge.startup()
    await bridge.shutdown()

    assert reply_client.is_closed
    assert handoff_client.is_closed
