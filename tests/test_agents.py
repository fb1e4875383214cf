"""Multi-agent orchestration, prompts and the single-analyst flow."""
from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from financeos.ai_agents.llm_providers import LLMProvider
from financeos.ai_agents.orchestrator import (
    EMPTY_ANSWER,
    NO_DATA_ANSWER,
    FinancialAnalysisService,
    MultiAgentService,
)
from financeos.ai_agents.prompt_builder import PromptBuilder
from financeos.ai_agents.registry import AgentRegistry
from financeos.ai_agents.types import AgentScope
from financeos.core.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamQuotaExceeded,
    UpstreamRateLimited,
    ValidationError,
)
from financeos.models import AIInsight, AITrainingRule, AuditLog, SecurityCode, Transaction
from financeos.routers.agents import get_provider_factory
from financeos.services.audit_service import AuditService


class FakeProvider(LLMProvider):
    name = "fake"

    def __init__(self, answer: str = "Resposta", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def query(self, system_prompt, user_prompt, conversation_history=None, json_mode=False):
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return {"content": self.answer, "model": "fake", "provider": self.name, "usage": {}}


def _multi_agent(provider: FakeProvider) -> MultiAgentService:
    return MultiAgentService(provider_factory=lambda: provider, audit=AuditService(strict=False))


def _add_transaction(session, tenant_id: int, kind: str, amount: str, category: str, day: date) -> None:
    session.add(
        Transaction(
            tenant_id=tenant_id,
            type=kind,
            category=category,
            amount=Decimal(amount),
            transaction_date=day,
        )
    )
    session.commit()


def test_registry_lists_every_agent() -> None:
    registry = AgentRegistry()

    assert registry.names() == [
        "financial",
        "security",
        "monitoring",
        "integration",
        "compliance",
        "guardian",
    ]
    assert "guardian" in registry
    assert registry.get("unknown") is None


def test_agent_answer_writes_audit_then_insight(session, make_user) -> None:
    user = make_user("agent@example.com")
    _add_transaction(session, user.id, "expense", "80", "Transporte", date(2024, 2, 1))
    provider = FakeProvider("Gastos concentrados em transporte")

    answer = asyncio.run(
        _multi_agent(provider).ask(session, AgentScope(user.id), "financial", "Onde gasto mais?")
    )

    assert answer.agent == "financial"
    assert answer.answer == "Gastos concentrados em transporte"
    assert answer.has_custom_rules is False
    assert answer.data_context_summary == {"transactions_count": 1, "accounts_count": 0}
    system_prompt, question = provider.calls[0]
    assert question == "Onde gasto mais?"
    assert "Transporte" in system_prompt
    audit = session.execute(select(AuditLog).where(AuditLog.action == "AI_AGENT_QUERY")).scalar_one()
    assert audit.entity == "ai_multi_agent"
    assert audit.details["agent"] == "financial"
    insight = session.execute(select(AIInsight)).scalar_one()
    assert insight.insight_type == "financial"
    assert insight.content == "Gastos concentrados em transporte"


def test_failed_model_call_keeps_audit_but_no_insight(session, make_user) -> None:
    user = make_user("fail@example.com")
    provider = FakeProvider(error=UpstreamRateLimited())

    with pytest.raises(UpstreamRateLimited):
        asyncio.run(_multi_agent(provider).ask(session, AgentScope(user.id), "guardian", "Tudo ok?"))

    assert session.execute(select(AuditLog.action)).scalars().all() == ["AI_AGENT_QUERY"]
    assert session.execute(select(AIInsight)).scalars().all() == []


def test_question_is_truncated_in_audit(session, make_user) -> None:
    user = make_user("long@example.com")

    asyncio.run(
        _multi_agent(FakeProvider()).ask(session, AgentScope(user.id), "guardian", "x" * 500)
    )

    audit = session.execute(select(AuditLog)).scalar_one()
    assert audit.details["question"] == "x" * 200


def test_unknown_agent_and_missing_question_are_rejected(session, make_user) -> None:
    user = make_user("invalid@example.com")
    provider = FakeProvider()
    service = _multi_agent(provider)

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.ask(session, AgentScope(user.id), "oracle", "?"))
    assert excinfo.value.message == "Invalid agent type"

    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(service.ask(session, AgentScope(user.id), "financial", ""))
    assert excinfo.value.message == "Agent type and question are required"
    assert provider.calls == []


def test_empty_model_answer_gets_fallback(session, make_user) -> None:
    user = make_user("empty-answer@example.com")

    answer = asyncio.run(
        _multi_agent(FakeProvider("")).ask(session, AgentScope(user.id), "guardian", "Oi")
    )

    assert answer.answer == EMPTY_ANSWER


def test_training_rules_are_appended_by_priority(session, make_user) -> None:
    user = make_user("rules@example.com")
    session.add_all(
        [
            AITrainingRule(user_id=user.id, rule_type="financial", rule_content="Regra baixa", priority=1),
            AITrainingRule(user_id=user.id, rule_type="financial", rule_content="Regra alta", priority=5),
            AITrainingRule(
                user_id=user.id, rule_type="financial", rule_content="Inativa", priority=9, is_active=False
            ),
            AITrainingRule(user_id=user.id, rule_type="security", rule_content="Outro agente", priority=9),
        ]
    )
    session.commit()
    provider = FakeProvider()

    answer = asyncio.run(
        _multi_agent(provider).ask(session, AgentScope(user.id), "financial", "Resumo")
    )

    prompt = provider.calls[0][0]
    assert answer.has_custom_rules is True
    assert prompt.endswith("Regras personalizadas do usuário:\nRegra alta\nRegra baixa")
    assert "Inativa" not in prompt
    assert "Outro agente" not in prompt


def test_security_snapshot_is_scoped_and_hides_codes(session, make_user) -> None:
    user = make_user("sec@example.com")
    other = make_user("other@example.com")
    session.add_all(
        [
            SecurityCode(user_id=user.id, code="MINE1234", is_active=True),
            SecurityCode(user_id=other.id, code="THEIRS99", is_active=True),
        ]
    )
    session.commit()
    definition = AgentRegistry().get("security")

    snapshot = definition.snapshot(session, AgentScope(user.id))
    admin_snapshot = definition.snapshot(session, AgentScope(user.id, role="admin"))

    assert [row["user_id"] for row in snapshot["security_codes"]] == [user.id]
    assert all("code" not in row for row in snapshot["security_codes"])
    assert len(admin_snapshot["security_codes"]) == 2


def test_guardian_prompt_has_no_data_section() -> None:
    definition = AgentRegistry().get("guardian")

    prompt = PromptBuilder().build_agent_prompt(definition, definition.snapshot(None, AgentScope(1)))

    assert "Dados disponíveis" not in prompt
    assert "NUNCA invente dados" in prompt


def test_financial_analysis_without_data_skips_model(session, make_user) -> None:
    user = make_user("nodata@example.com")
    provider = FakeProvider()
    service = FinancialAnalysisService(provider_factory=lambda: provider)

    result = asyncio.run(service.analyse(session, AgentScope(user.id), "Como estou?"))

    assert result.has_data is False
    assert result.answer == NO_DATA_ANSWER
    assert provider.calls == []


def test_financial_analysis_summarises_in_portuguese(session, make_user) -> None:
    user = make_user("analysis@example.com")
    _add_transaction(session, user.id, "income", "1234.5", "Salário", date(2024, 1, 5))
    _add_transaction(session, user.id, "expense", "200", "Lazer", date(2024, 1, 8))
    provider = FakeProvider("Você economizou")
    service = FinancialAnalysisService(provider_factory=lambda: provider)

    result = asyncio.run(service.analyse(session, AgentScope(user.id), "Como estou?"))

    assert result.has_data is True
    assert result.data_summary.net_balance == Decimal("1034.5")
    prompt = provider.calls[0][0]
    assert "- Total de Receitas: R$ 1.234,50" in prompt
    assert "- Lazer: R$ 200,00" in prompt
    assert "REGRAS OBRIGATÓRIAS" in prompt
    audit = session.execute(select(AuditLog).where(AuditLog.action == "ai_analysis")).scalar_one()
    assert audit.details["transactions_analyzed"] == 2


def test_financial_analysis_localizes_gateway_errors(session, make_user) -> None:
    user = make_user("limits@example.com")
    _add_transaction(session, user.id, "income", "10", "Pix", date(2024, 1, 5))

    limited = FinancialAnalysisService(provider_factory=lambda: FakeProvider(error=UpstreamRateLimited()))
    with pytest.raises(UpstreamRateLimited) as excinfo:
        asyncio.run(limited.analyse(session, AgentScope(user.id), "?"))
    assert excinfo.value.message.startswith("Limite de requisições atingido")

    broken = FinancialAnalysisService(provider_factory=lambda: FakeProvider(error=UpstreamError()))
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(broken.analyse(session, AgentScope(user.id), "?"))
    assert excinfo.value.message == "Erro ao processar análise"


def test_financial_analysis_without_key(session, make_user) -> None:
    user = make_user("nokey@example.com")

    def _unconfigured():
        raise ConfigurationError()

    service = FinancialAnalysisService(provider_factory=_unconfigured)
    with pytest.raises(ConfigurationError) as excinfo:
        asyncio.run(service.analyse(session, AgentScope(user.id), "?"))
    assert excinfo.value.message == "API de IA não configurada"


def test_multi_agent_route_uses_injected_provider(app, client, make_user, auth_headers) -> None:
    user = make_user("route@example.com")
    provider = FakeProvider("Sem alertas")
    app.dependency_overrides[get_provider_factory] = lambda: (lambda: provider)

    response = client.post(
        "/functions/ai-multi-agent",
        json={"agent": "monitoring", "question": "Status?"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json() == {
        "agent": "monitoring",
        "answer": "Sem alertas",
        "has_custom_rules": False,
        "data_context_summary": {"health_checks_count": 0},
    }


def test_multi_agent_route_maps_quota_errors(app, client, make_user, auth_headers) -> None:
    user = make_user("quota@example.com")
    app.dependency_overrides[get_provider_factory] = lambda: (
        lambda: FakeProvider(error=UpstreamQuotaExceeded())
    )

    response = client.post(
        "/functions/ai-multi-agent",
        json={"agent": "guardian", "question": "?"},
        headers=auth_headers(user),
    )

    assert response.status_code == 402
    assert response.json() == {"error": "AI credits exhausted."}


def test_training_rule_crud(client, make_user, auth_headers) -> None:
    user = make_user("crud@example.com")
    headers = auth_headers(user)

    invalid = client.post(
        "/ai/training-rules",
        json={"rule_type": "oracle", "rule_content": "x"},
        headers=headers,
    )
    assert invalid.status_code == 400

    created = client.post(
        "/ai/training-rules",
        json={"rule_type": "financial", "rule_content": "Use tom formal", "priority": 2},
        headers=headers,
    )
    assert created.status_code == 201
    rule_id = created.json()["id"]

    toggled = client.patch(f"/ai/training-rules/{rule_id}", json={"is_active": False}, headers=headers)
    assert toggled.json()["is_active"] is False

    assert client.delete(f"/ai/training-rules/{rule_id}", headers=headers).status_code == 204
    assert client.get("/ai/training-rules", headers=headers).json() == []
