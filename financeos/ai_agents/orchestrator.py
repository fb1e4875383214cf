"""
Agent orchestration
Snapshot, prompt, audit, model call and insight storage for each question
"""
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamQuotaExceeded,
    UpstreamRateLimited,
    ValidationError,
)
from financeos.core.log import get_logger, log_context
from financeos.models import Account, AIInsight, AITrainingRule, Transaction
from financeos.models.serialize import serialize_row
from financeos.schemas.agents import AgentAnswer, AnalysisAnswer, AnalysisSummary
from financeos.services.audit_service import AuditService
from financeos.services.best_effort import run_best_effort

from .config import AgentConfig, agent_config
from .llm_providers import LLMProvider, LLMProviderFactory
from .prompt_builder import PromptBuilder, summarize_transactions
from .registry import AgentRegistry, AgentDefinition, Snapshot
from .types import AgentScope

logger = get_logger(__name__)

ProviderFactory = Callable[[], LLMProvider]

EMPTY_ANSWER = "Não foi possível gerar uma resposta."
NO_DATA_ANSWER = (
    "Não há dados financeiros suficientes para análise. "
    "Adicione transações para obter insights."
)


def active_rules(session: Session, user_id: int, agent: str) -> list[str]:
    """Active training rules for one agent, highest priority first."""

    return list(
        session.execute(
            select(AITrainingRule.rule_content)
            .where(
                AITrainingRule.user_id == user_id,
                AITrainingRule.rule_type == agent,
                AITrainingRule.is_active.is_(True),
            )
            .order_by(AITrainingRule.priority.desc(), AITrainingRule.id.asc())
        ).scalars()
    )


def summarize_snapshot(snapshot: Snapshot) -> dict[str, int]:
    return {f"{key}_count": len(rows) for key, rows in snapshot.items()}


class MultiAgentService:
    """Answer questions through one of the registered agents"""

    def __init__(
        self,
        provider_factory: Optional[ProviderFactory] = None,
        registry: Optional[AgentRegistry] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        audit: Optional[AuditService] = None,
        config: Optional[AgentConfig] = None,
    ):
        self.provider_factory = provider_factory or LLMProviderFactory.create
        self.registry = registry or AgentRegistry()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.audit = audit or AuditService()
        self.config = config or agent_config

    async def ask(
        self, session: Session, scope: AgentScope, agent: object, question: object
    ) -> AgentAnswer:
        """
        Run one agent query end-to-end

        The audit row is written before the model is called; the insight row
        only after a successful answer.
        """
        if not isinstance(agent, str) or not agent or not isinstance(question, str) or not question.strip():
            raise ValidationError("Agent type and question are required")

        definition = self.registry.get(agent)
        if definition is None:
            raise ValidationError("Invalid agent type")

        with log_context.scope(agent=agent):
            return await self._run(session, scope, definition, question)

    async def _run(
        self, session: Session, scope: AgentScope, definition: AgentDefinition, question: str
    ) -> AgentAnswer:
        agent = definition.name
        try:
            snapshot = definition.snapshot(session, scope)
            rules = active_rules(session, scope.user_id, agent)
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Failed to load data for agent %s", agent)
            raise UpstreamError("Failed to load agent data") from e

        system_prompt = self.prompt_builder.build_agent_prompt(definition, snapshot, rules)
        provider = self.provider_factory()

        self.audit.log(
            session,
            "AI_AGENT_QUERY",
            user_id=scope.user_id,
            entity="ai_multi_agent",
            details={"agent": agent, "question": question[: self.config.question_audit_chars]},
        )

        result = await provider.query(system_prompt, question)
        answer = result.get("content") or EMPTY_ANSWER

        run_best_effort(
            session,
            "ai_insight",
            lambda s: s.add(
                AIInsight(
                    user_id=scope.user_id,
                    insight_type=agent,
                    question=question,
                    content=answer,
                    data_context=snapshot,
                )
            ),
            agent=agent,
        )
        logger.info("Agent %s answered for user %s", agent, scope.user_id)

        return AgentAnswer(
            agent=agent,
            answer=answer,
            has_custom_rules=bool(rules),
            data_context_summary=summarize_snapshot(snapshot),
        )


class FinancialAnalysisService:
    """Single financial analyst answering from the tenant's latest transactions"""

    def __init__(
        self,
        provider_factory: Optional[ProviderFactory] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        audit: Optional[AuditService] = None,
        config: Optional[AgentConfig] = None,
    ):
        self.provider_factory = provider_factory or LLMProviderFactory.create
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.audit = audit or AuditService()
        self.config = config or agent_config

    async def analyse(self, session: Session, scope: AgentScope, question: object) -> AnalysisAnswer:
        try:
            provider = self.provider_factory()
        except ConfigurationError as e:
            raise ConfigurationError("API de IA não configurada") from e

        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Pergunta é obrigatória")

        logger.info("AI analysis for tenant %s", scope.user_id)
        try:
            transactions = [
                serialize_row(row)
                for row in session.execute(
                    select(Transaction)
                    .where(Transaction.tenant_id == scope.user_id)
                    .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
                    .limit(self.config.financial_transactions_limit)
                ).scalars()
            ]
            accounts = [
                serialize_row(row)
                for row in session.execute(
                    select(Account).where(Account.tenant_id == scope.user_id)
                ).scalars()
            ]
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Error fetching transactions for analysis")
            raise UpstreamError("Erro ao buscar transações") from e

        if not transactions:
            return AnalysisAnswer(answer=NO_DATA_ANSWER, has_data=False)

        data_context = self.prompt_builder.build_analysis_context(
            transactions, accounts, self.config.analysis_recent_transactions
        )
        system_prompt = self.prompt_builder.build_analysis_prompt(data_context)

        try:
            result = await provider.query(system_prompt, question)
        except UpstreamRateLimited as e:
            raise UpstreamRateLimited(
                "Limite de requisições atingido. Tente novamente em alguns minutos."
            ) from e
        except UpstreamQuotaExceeded as e:
            raise UpstreamQuotaExceeded("Créditos de IA esgotados.") from e
        except UpstreamError as e:
            raise UpstreamError("Erro ao processar análise") from e

        answer = result.get("content") or EMPTY_ANSWER
        self.audit.log(
            session,
            "ai_analysis",
            user_id=scope.user_id,
            entity="financial_transactions",
            details={"question": question, "transactions_analyzed": len(transactions)},
        )
        logger.info("AI analysis completed successfully")

        return AnalysisAnswer(
            answer=answer,
            has_data=True,
            data_summary=AnalysisSummary(**summarize_transactions(transactions)),
        )


__all__ = [
    "FinancialAnalysisService",
    "MultiAgentService",
    "active_rules",
    "summarize_snapshot",
    "EMPTY_ANSWER",
    "NO_DATA_ANSWER",
]
