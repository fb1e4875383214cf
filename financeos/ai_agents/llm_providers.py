"""
LLM Provider Abstraction Layer
Supports an OpenAI-compatible chat-completions gateway and Anthropic Claude
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from financeos.core.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamQuotaExceeded,
    UpstreamRateLimited,
)
from financeos.core.log import get_logger

from .config import LLMProviderConfig, llm_config

logger = get_logger(__name__)


def raise_for_gateway_status(response: httpx.Response, provider: str) -> None:
    """Map a non-success gateway response onto the upstream error taxonomy."""

    if response.is_success:
        return
    logger.error(
        "%s gateway error: %s %s", provider, response.status_code, response.text[:500]
    )
    if response.status_code == 429:
        raise UpstreamRateLimited()
    if response.status_code == 402:
        raise UpstreamQuotaExceeded()
    raise UpstreamError("AI service unavailable")


class LLMProvider(ABC):
    """Base class for LLM providers"""

    name: str = "base"

    def __init__(
        self,
        config: Optional[LLMProviderConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or llm_config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport)

    async def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"{self.name} request failed: {e}")
            raise UpstreamError("AI service unavailable") from e

        raise_for_gateway_status(response, self.name)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("AI service unavailable") from e

    @abstractmethod
    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        conversation_history: Optional[list] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """Query the LLM with a prompt"""
        raise NotImplementedError


class ClaudeProvider(LLMProvider):
    """Anthropic Claude API provider"""

    name = "claude"

    def __init__(self, model: Optional[str] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.api_key = self.config.claude_api_key
        self.model = model or self.config.claude_model
        self.max_tokens = self.config.claude_max_tokens

        if not self.api_key:
            raise ConfigurationError("Claude API key not configured. Set CLAUDE_API_KEY.")

    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        conversation_history: Optional[list] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """Query Claude API"""

        messages = list(conversation_history or [])
        user_content = user_prompt
        if json_mode:
            user_content += "\n\nIMPORTANT: Respond with valid JSON only."
        messages.append({"role": "user", "content": user_content})

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": messages,
        }
        data = await self._post(
            self.config.claude_api_url,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            payload=payload,
        )

        blocks = data.get("content") or [{}]
        return {
            "content": blocks[0].get("text", ""),
            "model": self.model,
            "provider": self.name,
            "usage": data.get("usage", {}),
        }


class ChatGPTProvider(LLMProvider):
    """OpenAI-compatible chat-completions provider (OpenAI or a gateway in front of it)"""

    name = "chatgpt"

    def __init__(self, model: Optional[str] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.api_key = self.config.openai_api_key
        self.model = model or self.config.openai_model
        self.max_tokens = self.config.openai_max_tokens

        if not self.api_key:
            raise ConfigurationError(
                "AI gateway API key not configured. Set AI_GATEWAY_API_KEY or OPENAI_API_KEY."
            )

    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        conversation_history: Optional[list] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """Query the chat-completions endpoint"""

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if conversation_history:
            messages.extend(conversation_history)
        messages.append({"role": "user", "content": user_prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post(
            self.config.gateway_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload=payload,
        )

        choices = data.get("choices") or [{}]
        return {
            "content": (choices[0].get("message") or {}).get("content") or "",
            "model": self.model,
            "provider": self.name,
            "usage": data.get("usage", {}),
        }


class LLMProviderFactory:
    """Factory to create appropriate LLM provider"""

    PROVIDERS = {
        "chatgpt": ChatGPTProvider,
        "claude": ClaudeProvider,
    }

    @staticmethod
    def create(
        provider_name: Optional[str] = None,
        config: Optional[LLMProviderConfig] = None,
        **kwargs: Any,
    ) -> LLMProvider:
        """
        Create LLM provider instance

        Args:
            provider_name: ``chatgpt`` or ``claude``; defaults to ``AI_PROVIDER``
            config: Provider configuration, defaults to the environment-driven one

        Returns:
            Configured LLM provider instance
        """
        resolved_config = config or llm_config
        normalized = (provider_name or resolved_config.provider).strip().lower()
        if normalized.startswith("gpt"):
            normalized = "chatgpt"
        elif normalized.startswith("claude"):
            normalized = "claude"

        provider_cls = LLMProviderFactory.PROVIDERS.get(normalized)
        if provider_cls is None:
            raise ConfigurationError(f"Unknown LLM provider: {provider_name}")
        return provider_cls(config=resolved_config, **kwargs)
