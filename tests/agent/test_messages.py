"""Tests for conversation message types."""

import pytest

from nanoclaw.agent.messages import Message, Role, ToolCall


def test_tool_call_parse_arguments():
    call = ToolCall(id="call_1", name="shell", arguments='{"command": "ls"}')
    assert call.parse_arguments() == {"command": "ls"}


def test_tool_call_empty_arguments_parse_to_empty_dict():
    assert ToolCall(id="c", name="t", arguments="").parse_arguments() == {}
    assert ToolCall(id="c", name="t", arguments="   ").parse_arguments() == {}


def test_tool_call_invalid_json_raises_value_error():
    call = ToolCall(id="c", name="t", arguments="{not json")
    with pytest.raises(ValueError, match="not valid JSON"):
        call.parse_arguments()


def test_tool_call_non_object_arguments_rejected():
    call = ToolCall(id="c", name="t", arguments="[1, 2]")
    with pytest.raises(ValueError, match="JSON object"):
        call.parse_arguments()


def test_tool_call_from_openai_dict():
    call = ToolCall.from_dict({
        "id": "call_abc",
        "type": "function",
        "function": {"name": "read_file", "arguments": '{"path": "a.txt"}'},
    })
    assert call.id == "call_abc"
    assert call.name == "read_file"
    assert call.parse_arguments() == {"path": "a.txt"}
    assert call.to_dict()["function"]["name"] == "read_file"


def test_tool_call_from_dict_with_decoded_arguments():
    call = ToolCall.from_dict({"id": "x", "function": {"name": "t", "arguments": {"a": 1}}})
    assert call.parse_arguments() == {"a": 1}


def test_message_factories():
    assert Message.system("s").role == Role.SYSTEM
    assert Message.user("u").role == Role.USER
    tool_msg = Message.tool("out", "shell", "call_1")
    assert tool_msg.role == Role.TOOL
    assert tool_msg.name == "shell"
    assert tool_msg.tool_call_id == "call_1"


def test_assistant_message_with_tool_calls_may_have_empty_content():
    calls = [ToolCall(id="c1", name="shell", arguments="{}")]
    msg = Message.assistant(None, tool_calls=calls)
    assert msg.content == ""
    assert msg.tool_calls == calls


def test_to_dict_omits_absent_fields():
    data = Message.user("hi").to_dict()
    assert data == {"role": "user", "content": "hi"}


def test_dict_round_trip_preserves_tool_calls():
    msg = Message.assistant("", tool_calls=[ToolCall(id="c1", name="shell", arguments='{"command": "ls"}')])
    restored = Message.from_dict(msg.to_dict())
    assert restored.role == Role.ASSISTANT
    assert restored.tool_calls[0].id == "c1"
    assert restored.tool_calls[0].arguments == '{"command": "ls"}'


def test_copy_is_independent():
    msg = Message.user("original")
    clone = msg.copy()
    clone.content = "changed"
    assert msg.content == "original"
