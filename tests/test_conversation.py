import pytest

from linebridge.core.conversation import ConversationMemory


def test_push_caps_history_at_ten():
    memory = ConversationMemory()
    for i in range(25):
        memory.push("u1", "user", f"msg {i}")
        assert len(memory.turns("u1")) == min(i + 1, 10)

    assert [t.content for t in memory.turns("u1")] == [f"msg {i}" for i in range(15, 25)]


def test_recent_returns_last_five_oldest_first():
    memory = ConversationMemory()
    for i in range(7):
        memory.push("u1", "user" if i % 2 == 0 else "assistant", f"m{i}")

    recent = memory.recent("u1", 5)
    assert recent == [
        {"role": "user", "content": "m2"},
        {"role": "assistant", "content": "m3"},
        {"role": "user", "content": "m4"},
        {"role": "assistant", "content": "m5"},
        {"role": "user", "content": "m6"},
    ]
    assert memory.recent("u1") == recent


def test_recent_for_unknown_user_is_empty():
    memory = ConversationMemory()
    assert memory.recent("nobody") == []
    assert memory.recent("nobody", 0) == []


def test_identical_pushes_are_not_deduplicated():
    memory = ConversationMemory()
    for _ in range(3):
        memory.push("u1", "user", "same")
    assert len(memory.turns("u1")) == 3
    assert all(t.timestamp > 0 for t in memory.turns("u1"))


def test_users_are_isolated():
    memory = ConversationMemory()
    memory.push("a", "user", "hi from a")
    memory.push("b", "user", "hi from b")
    assert memory.recent("a") == [{"role": "user", "content": "hi from a"}]
    assert len(memory) == 2

    memory.clear("a")
    assert memory.recent("a") == []
    assert len(memory) == 1


def test_rejects_unknown_role():
    with pytest.raises(ValueError):
        ConversationMemory().push("u1", "system", "nope")
