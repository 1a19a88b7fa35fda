"""Tests for durable session memory."""

import json

from nanoclaw.agent.memory import Memory
from nanoclaw.agent.messages import Message, Role, ToolCall


def test_new_session_starts_empty(memory_dir):
    memory = Memory("fresh", memory_dir=memory_dir)
    assert memory.get_messages() == []
    assert memory.message_count == 0


def test_add_message_persists_immediately(memory_dir):
    memory = Memory("s1", memory_dir=memory_dir)
    memory.add_message(Message.user("hello"))

    data = json.loads(memory.path.read_text(encoding="utf-8"))
    assert data == [{"role": "user", "content": "hello"}]


def test_history_survives_reload(memory_dir):
    memory = Memory("s1", memory_dir=memory_dir)
    memory.add_message(Message.user("question"))
    memory.add_message(Message.assistant("", tool_calls=[ToolCall(id="c1", name="shell", arguments='{"command": "ls"}')]))
    memory.add_message(Message.tool("file.txt", "shell", "c1"))
    memory.add_message(Message.assistant("answer"))

    reloaded = Memory("s1", memory_dir=memory_dir)
    messages = reloaded.get_messages()

    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
    assert messages[1].tool_calls[0].id == "c1"
    assert messages[2].tool_call_id == "c1"
    assert messages[3].content == "answer"


def test_sessions_are_isolated(memory_dir):
    Memory("a", memory_dir=memory_dir).add_message(Message.user("for a"))
    assert Memory("b", memory_dir=memory_dir).get_messages() == []


def test_session_id_is_made_file_safe(memory_dir):
    memory = Memory("telegram:123/456", memory_dir=memory_dir)
    memory.add_message(Message.user("x"))
    assert memory.path.parent == memory_dir
    assert memory.path.name == "telegram_123_456.json"


def test_trim_keeps_system_and_newest(memory_dir):
    memory = Memory("trim", max_messages=3, memory_dir=memory_dir)
    memory.add_message(Message.system("rules"))
    for i in range(5):
        memory.add_message(Message.user(f"m{i}"))

    messages = memory.get_messages()
    assert [m.content for m in messages] == ["rules", "m2", "m3", "m4"]


def test_trim_never_reorders(memory_dir):
    memory = Memory("order", max_messages=2, memory_dir=memory_dir)
    memory.add_message(Message.user("u0"))
    memory.add_message(Message.system("sys"))
    memory.add_message(Message.user("u1"))
    memory.add_message(Message.user("u2"))

    assert [m.content for m in memory.get_messages()] == ["sys", "u1", "u2"]


def test_system_messages_never_evicted(memory_dir):
    memory = Memory("sys", max_messages=1, memory_dir=memory_dir)
    for i in range(3):
        memory.add_message(Message.system(f"s{i}"))
    memory.add_message(Message.user("a"))
    memory.add_message(Message.user("b"))

    contents = [m.content for m in memory.get_messages()]
    assert contents == ["s0", "s1", "s2", "b"]


def test_get_messages_returns_copies(memory_dir):
    memory = Memory("copies", memory_dir=memory_dir)
    memory.add_message(Message.user("original"))

    snapshot = memory.get_messages()
    snapshot[0].content = "tampered"
    snapshot.append(Message.user("extra"))

    assert [m.content for m in memory.get_messages()] == ["original"]


def test_appended_message_is_copied(memory_dir):
    memory = Memory("in", memory_dir=memory_dir)
    msg = Message.user("before")
    memory.add_message(msg)
    msg.content = "after"
    assert memory.get_messages()[0].content == "before"


def test_get_recent_messages(memory_dir):
    memory = Memory("recent", memory_dir=memory_dir)
    for i in range(4):
        memory.add_message(Message.user(str(i)))

    assert [m.content for m in memory.get_recent_messages(2)] == ["2", "3"]
    assert len(memory.get_recent_messages(10)) == 4
    assert memory.get_recent_messages(0) == []


def test_update_last_message(memory_dir):
    memory = Memory("update", memory_dir=memory_dir)
    memory.add_message(Message.user("first"))
    memory.add_message(Message.assistant("draft"))
    memory.update_last_message("final")

    reloaded = Memory("update", memory_dir=memory_dir)
    assert [m.content for m in reloaded.get_messages()] == ["first", "final"]


def test_update_last_message_on_empty_is_noop(memory_dir):
    memory = Memory("empty", memory_dir=memory_dir)
    memory.update_last_message("nothing")
    assert memory.get_messages() == []


def test_clear_persists_empty_history(memory_dir):
    memory = Memory("clear", memory_dir=memory_dir)
    memory.add_message(Message.user("x"))
    memory.clear()

    assert json.loads(memory.path.read_text(encoding="utf-8")) == []
    assert Memory("clear", memory_dir=memory_dir).get_messages() == []


def test_corrupt_file_loads_as_empty(memory_dir):
    (memory_dir / "broken.json").write_text("{ not json", encoding="utf-8")

    memory = Memory("broken", memory_dir=memory_dir)
    assert memory.get_messages() == []

    memory.add_message(Message.user("recovered"))
    assert [m.content for m in Memory("broken", memory_dir=memory_dir).get_messages()] == ["recovered"]


def test_wrong_shape_loads_as_empty(memory_dir):
    (memory_dir / "shape.json").write_text(json.dumps({"role": "user"}), encoding="utf-8")
    assert Memory("shape", memory_dir=memory_dir).get_messages() == []


def test_defaults_to_data_dir(nanoclaw_home):
    memory = Memory("default")
    memory.add_message(Message.user("x"))
    assert memory.path == nanoclaw_home / "memory" / "default.json"
    assert memory.path.exists()


def test_trim_at_default_scale(memory_dir):
    memory = Memory("scale", max_messages=100, memory_dir=memory_dir)
    memory.add_message(Message.system("system prompt"))
    for i in range(150):
        memory.add_message(Message.user(f"n{i}"))
    memory.add_message(Message.user("n150"))

    messages = memory.get_messages()
    assert len(messages) == 101
    assert messages[0].content == "system prompt"
    assert [m.content for m in messages[1:]] == [f"n{i}" for i in range(51, 151)]


def test_reload_yields_identical_list(memory_dir):
    memory = Memory("identical", memory_dir=memory_dir)
    memory.add_message(Message.system("s"))
    memory.add_message(Message.user("u"))
    memory.add_message(Message.assistant("", tool_calls=[ToolCall(id="c9", name="read_file", arguments='{"path": "x"}')]))
    memory.add_message(Message.tool("contents", "read_file", "c9"))

    assert Memory("identical", memory_dir=memory_dir).get_messages() == memory.get_messages()
