"""Tests for the OpenAI-compatible provider."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from nanoclaw.agent.messages import Message
from nanoclaw.providers.base import LLMResponse, ProviderError
from nanoclaw.providers.openai_compat import OpenAICompatProvider


@pytest.fixture
def provider():
    return OpenAICompatProvider(
        name="test",
        api_key="test-key",
        api_base="http://localhost:9999/v1/",
        strip_prefix="openai",
        extra_headers={"X-Extra": "1"},
        retry_base_delay=0.0,
    )


@pytest.fixture
def mock_response():
    """Standard OpenAI-compatible response body."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello from test model!"},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": 10,
            "completion_tokens": 5,
            "total_tokens": 15,
        },
    }


def make_http_response(status_code=200, body=None, headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {}
    resp.json.return_value = body
    if status_code >= 400:
        request = httpx.Request("POST", "http://localhost:9999/v1/chat/completions")
        real = httpx.Response(status_code, request=request, text="bad request")
        resp.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError("error", request=request, response=real)
        )
    else:
        resp.raise_for_status = MagicMock()
    return resp


def test_format_model_name(provider):
    assert provider.format_model_name("openai/gpt-4o") == "gpt-4o"
    assert provider.format_model_name("gpt-4o") == "gpt-4o"
    assert provider.format_model_name("anthropic/claude") == "anthropic/claude"


def test_headers(provider):
    headers = provider._build_headers()
    assert headers["Authorization"] == "Bearer test-key"
    assert headers["X-Extra"] == "1"


@pytest.mark.asyncio
async def test_complete_success(provider, mock_response):
    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=make_http_response(body=mock_response)
    ) as mock_post:
        resp = await provider.complete([Message.user("Hello")], "openai/gpt-4o", temperature=0.1, max_tokens=50)

    assert isinstance(resp, LLMResponse)
    assert resp.content == "Hello from test model!"
    assert resp.finish_reason == "stop"
    assert not resp.has_tool_calls
    assert resp.usage["total_tokens"] == 15

    url = mock_post.call_args.args[0]
    body = mock_post.call_args.kwargs["json"]
    assert url == "http://localhost:9999/v1/chat/completions"
    assert body["model"] == "gpt-4o"
    assert body["messages"] == [{"role": "user", "content": "Hello"}]
    assert body["temperature"] == 0.1
    assert body["max_tokens"] == 50
    assert "tools" not in body

    stats = provider.get_stats()
    assert stats["requests"] == 1
    assert stats["total_tokens"] == 15
    await provider.close()


@pytest.mark.asyncio
async def test_complete_sends_tools_and_parses_tool_calls(provider):
    body = {
        "choices": [{
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "shell", "arguments": "{\"command\": \"ls\"}"},
                }],
            },
            "finish_reason": "tool_calls",
        }],
    }
    tools = [{"type": "function", "function": {"name": "shell", "description": "d", "parameters": {}}}]

    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=make_http_response(body=body)
    ) as mock_post:
        resp = await provider.complete([Message.user("list")], "gpt-4o", tools=tools)

    assert mock_post.call_args.kwargs["json"]["tools"] == tools
    assert resp.content == ""
    assert resp.has_tool_calls
    assert resp.tool_calls[0].id == "call_1"
    assert resp.tool_calls[0].parse_arguments() == {"command": "ls"}


@pytest.mark.asyncio
async def test_retries_server_errors(provider, mock_response):
    responses = [make_http_response(503), make_http_response(body=mock_response)]
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock, side_effect=responses) as mock_post:
        resp = await provider.complete([Message.user("Hi")], "gpt-4o")

    assert resp.content == "Hello from test model!"
    assert mock_post.await_count == 2


@pytest.mark.asyncio
async def test_rate_limit_honours_retry_after(provider, mock_response):
    responses = [make_http_response(429, headers={"Retry-After": "0"}), make_http_response(body=mock_response)]
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock, side_effect=responses):
        with patch("nanoclaw.providers.openai_compat.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            resp = await provider.complete([Message.user("Hi")], "gpt-4o")

    assert resp.content == "Hello from test model!"
    mock_sleep.assert_awaited_once_with(0.0)


@pytest.mark.asyncio
async def test_rate_limit_with_date_retry_after_uses_backoff(mock_response):
    provider = OpenAICompatProvider(name="test", api_key="k", api_base="http://localhost:9999/v1", retry_base_delay=1.5)
    responses = [
        make_http_response(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}),
        make_http_response(body=mock_response),
    ]
    with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock, side_effect=responses):
        with patch("nanoclaw.providers.openai_compat.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            resp = await provider.complete([Message.user("Hi")], "gpt-4o")

    assert resp.content == "Hello from test model!"
    mock_sleep.assert_awaited_once_with(1.5)


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(provider):
    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, side_effect=httpx.ConnectError("refused")
    ) as mock_post:
        with pytest.raises(ProviderError, match="failed after 3 attempts"):
            await provider.complete([Message.user("Hi")], "gpt-4o")

    assert mock_post.await_count == 3
    assert provider.get_stats()["errors"] == 1


@pytest.mark.asyncio
async def test_client_error_not_retried(provider):
    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=make_http_response(401)
    ) as mock_post:
        with pytest.raises(ProviderError, match="HTTP 401"):
            await provider.complete([Message.user("Hi")], "gpt-4o")

    assert mock_post.await_count == 1


@pytest.mark.asyncio
async def test_empty_choices_is_an_error(provider):
    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=make_http_response(body={"choices": []})
    ):
        with pytest.raises(ProviderError, match="Empty response"):
            await provider.complete([Message.user("Hi")], "gpt-4o")
