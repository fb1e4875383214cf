"""
AI agent configuration
Centralized configuration for the LLM gateway used by the agents
"""
import os
from typing import Literal

from pydantic import BaseModel, Field


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class LLMProviderConfig(BaseModel):
    """Configuration for LLM providers"""

    provider: Literal["chatgpt", "claude"] = Field(
        default_factory=lambda: os.getenv("AI_PROVIDER", "chatgpt").strip().lower()
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
    )

    # OpenAI-compatible gateway (chat completions)
    gateway_url: str = Field(
        default_factory=lambda: os.getenv(
            "AI_GATEWAY_URL", "https://api.openai.com/v1/chat/completions"
        )
    )
    openai_api_key: str = Field(
        default_factory=lambda: os.getenv("AI_GATEWAY_API_KEY") or os.getenv("OPENAI_API_KEY", "")
    )
    openai_model: str = Field(default_factory=lambda: os.getenv("AI_MODEL", "gpt-4o-mini"))
    openai_max_tokens: int = Field(default_factory=lambda: _env_int("AI_MAX_TOKENS", 2000))

    # Claude Configuration
    claude_api_url: str = "https://api.anthropic.com/v1/messages"
    claude_api_key: str = Field(
        default_factory=lambda: os.getenv("CLAUDE_API_KEY", "")
    )
    claude_model: str = Field(
        default_factory=lambda: os.getenv("CLAUDE_MODEL", "claude-haiku-4-5-20251001")
    )
    claude_max_tokens: int = Field(default_factory=lambda: _env_int("AI_MAX_TOKENS", 2000))

    def active_api_key(self) -> str:
        return self.claude_api_key if self.provider == "claude" else self.openai_api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.active_api_key())


class AgentConfig(BaseModel):
    """Snapshot sizes for each agent's data context"""

    financial_transactions_limit: int = 100
    security_audit_limit: int = 50
    security_codes_limit: int = 20
    monitoring_checks_limit: int = 50
    integration_logs_limit: int = 30
    compliance_logs_limit: int = 30
    question_audit_chars: int = 200
    analysis_recent_transactions: int = 10


# Global config instances
llm_config = LLMProviderConfig()
agent_config = AgentConfig()
