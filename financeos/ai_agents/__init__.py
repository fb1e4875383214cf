"""AI agents answering questions from tenant data through an LLM gateway."""

from .llm_providers import ChatGPTProvider, ClaudeProvider, LLMProvider, LLMProviderFactory
from .orchestrator import FinancialAnalysisService, MultiAgentService
from .registry import AgentRegistry, AgentDefinition
from .types import AgentScope

__all__ = [
    "AgentRegistry",
    "AgentScope",
    "AgentDefinition",
    "ChatGPTProvider",
    "ClaudeProvider",
    "FinancialAnalysisService",
    "LLMProvider",
    "LLMProviderFactory",
    "MultiAgentService",
]
