import asyncio
import json

import pytest

from linebridge.analytics.chat_logger import ChatLogger


@pytest.mark.asyncio
async def test_records_are_jsonl_with_expected_keys(chat_logger):
    assert await chat_logger.log_inbound("U1", "報價流程")
    assert await chat_logger.log_outbound(
        "U1", "【參考回答】\n請提供公司名稱", "faq-offline", [{"question": "報價流程？", "score": 0.182}]
    )

    lines = chat_logger.log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert "報價流程" in lines[0]

    inbound, outbound = (json.loads(line) for line in lines)
    assert set(inbound) == {"timestamp", "direction", "userId", "text"}
    assert inbound["direction"] == "in"
    assert isinstance(inbound["timestamp"], int)
    assert outbound["route"] == "faq-offline"
    assert outbound["hits"] == [{"question": "報價流程？", "score": 0.182}]


@pytest.mark.asyncio
async def test_concurrent_appends_keep_lines_whole(chat_logger):
    await asyncio.gather(*(chat_logger.log_inbound(f"U{i}", "x" * 500) for i in range(20)))

    records = chat_logger.read_records()
    assert len(records) == 20
    assert {r["userId"] for r in records} == {f"U{i}" for i in range(20)}


@pytest.mark.asyncio
async def test_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    logger = ChatLogger(blocker / "chatlog.json")

    assert await logger.log_inbound("U1", "hi") is False


@pytest.mark.asyncio
async def test_stats(chat_logger):
    await chat_logger.log_inbound("U1", "報價")
    await chat_logger.log_outbound("U1", "a", "faq-offline", [{"question": "報價流程？", "score": 0.5}])
    await chat_logger.log_inbound("U2", "真人")
    await chat_logger.log_outbound("U2", "b", "handoff")
    await chat_logger.log_inbound("U1", "報價流程")
    await chat_logger.log_outbound("U1", "c", "faq-offline", [{"question": "報價流程？", "score": 0.4}])

    stats = chat_logger.get_stats()

    assert stats["total_inbound"] == 3
    assert stats["total_outbound"] == 3
    assert stats["unique_users"] == 2
    assert stats["routes"] == {"faq-offline": 2, "handoff": 1}
    assert stats["handoffs"] == 1
    assert stats["top_questions"] == [("報價流程？", 2)]


def test_read_records_skips_malformed_lines(chat_logger):
    chat_logger.log_file.parent.mkdir(parents=True)
    chat_logger.log_file.write_text('{"direction": "in", "userId": "U1"}\n{broken\n\n', encoding="utf-8")

    assert chat_logger.read_records() == [{"direction": "in", "userId": "U1"}]


def test_missing_log_has_empty_stats(chat_logger):
    stats = chat_logger.get_stats()
    assert stats["total_inbound"] == 0
    assert stats["top_questions"] == []
