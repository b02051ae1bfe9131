import json

import numpy as np
import pytest

from linebridge.analytics.chat_logger import ChatLogger
from linebridge.infrastructure.messaging import WebhookEvent


QUOTE_FAQ = {"question": "報價流程？", "answer": "請提供公司名稱、人數、需求模組，我們 1-2 個工作天回覆。"}
MACOS_FAQ = {"question": "是否支援 macOS？", "answer": "支援 macOS 12 以上版本。"}
LICENSE_FAQ = {"question": "什麼是產品A授權？", "answer": "產品A按年授權，分標準版與企業版。"}


class FakeMessenger:
    enabled = True

    def __init__(self, fail=False):
        self.fail = fail
        self.replies = []

    async def reply_text(self, reply_token, text):
        if self.fail:
            raise RuntimeError("reply API down")
        if not reply_token:
            raise ValueError("Event has no reply token")
        self.replies.append((reply_token, text))


class FakeLLM:
    def __init__(self, answer="Hello", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def complete(self, messages, model=None):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return self.answer

    def get_usage_stats(self):
        return {"calls": len(self.calls), "input_tokens": 0, "output_tokens": 0}


class FakeEmbedder:
    """Maps text onto three topic axes: quotes, macOS, everything else."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    @staticmethod
    def vector_for(text):
        if "報價" in text:
            return [1.0, 0.0, 0.0]
        if "macOS" in text:
            return [0.0, 1.0, 0.0]
        return [0.0, 0.0, 1.0]

    async def embed(self, texts):
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return np.asarray([self.vector_for(t) for t in texts], dtype=np.float32)


class FakeNotifier:
    enabled = True

    def __init__(self):
        self.calls = []

    async def notify(self, user_id, text, timestamp=None):
        self.calls.append((user_id, text))
        return True


def text_event(text, user_id="U123", reply_token="token-1"):
    payload = {
        "type": "message",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "text", "id": "1", "text": text},
    }
    if user_id is None:
        payload["source"] = {"type": "user"}
    return WebhookEvent.model_validate(payload)


@pytest.fixture
def write_faq(tmp_path):
    def _write(records, name="faq.json"):
        path = tmp_path / name
        path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def chat_logger(tmp_path):
    return ChatLogger(tmp_path / "logs" / "chatlog.json")
