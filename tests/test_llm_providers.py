"""LLM gateway providers against a mocked HTTP transport."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from financeos.ai_agents.config import LLMProviderConfig
from financeos.ai_agents.llm_providers import (
    ChatGPTProvider,
    ClaudeProvider,
    LLMProviderFactory,
)
from financeos.core.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamQuotaExceeded,
    UpstreamRateLimited,
)


def _config(**overrides) -> LLMProviderConfig:
    values = {
        "provider": "chatgpt",
        "gateway_url": "https://gateway.test/v1/chat/completions",
        "openai_api_key": "test-key",
        "openai_model": "test-model",
        "claude_api_key": "claude-key",
        "timeout_seconds": 5,
    }
    values.update(overrides)
    return LLMProviderConfig(**values)


def _transport(status: int, body: dict | None = None, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body or {})

    return httpx.MockTransport(handler)


def test_chat_completion_success() -> None:
    seen: list[httpx.Request] = []
    provider = ChatGPTProvider(
        config=_config(),
        transport=_transport(
            200,
            {"choices": [{"message": {"content": "Saldo positivo"}}], "usage": {"total_tokens": 9}},
            seen,
        ),
    )

    result = asyncio.run(provider.query("system", "Como estou?"))

    assert result["content"] == "Saldo positivo"
    assert result["provider"] == "chatgpt"
    assert result["usage"] == {"total_tokens": 9}
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer test-key"
    payload = json.loads(request.content)
    assert payload["model"] == "test-model"
    assert payload["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "Como estou?"},
    ]


def test_claude_success() -> None:
    seen: list[httpx.Request] = []
    provider = ClaudeProvider(
        config=_config(provider="claude"),
        transport=_transport(200, {"content": [{"type": "text", "text": "Olá"}]}, seen),
    )

    result = asyncio.run(provider.query("system", "Oi"))

    assert result["content"] == "Olá"
    assert seen[0].headers["x-api-key"] == "claude-key"
    assert json.loads(seen[0].content)["system"] == "system"


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (429, UpstreamRateLimited),
        (402, UpstreamQuotaExceeded),
        (500, UpstreamError),
        (503, UpstreamError),
    ],
)
def test_gateway_status_mapping(status: int, error: type[Exception]) -> None:
    provider = ChatGPTProvider(config=_config(), transport=_transport(status, {"error": "x"}))

    with pytest.raises(error) as excinfo:
        asyncio.run(provider.query("system", "question"))

    assert excinfo.value.status_code == {429: 429, 402: 402}.get(status, 500)


def test_network_failure_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = ChatGPTProvider(config=_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(provider.query("system", "question"))

    assert excinfo.value.message == "AI service unavailable"


def test_missing_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        ChatGPTProvider(config=_config(openai_api_key=""))
    with pytest.raises(ConfigurationError):
        ClaudeProvider(config=_config(claude_api_key=""))


def test_factory_resolves_provider_names() -> None:
    config = _config()

    assert isinstance(LLMProviderFactory.create("gpt-4o", config=config), ChatGPTProvider)
    assert isinstance(LLMProviderFactory.create("claude", config=config), ClaudeProvider)
    assert isinstance(LLMProviderFactory.create(config=config), ChatGPTProvider)
    with pytest.raises(ConfigurationError):
        LLMProviderFactory.create("mistral", config=config)
