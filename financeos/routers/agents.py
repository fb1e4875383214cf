"""AI agent endpoints and the training rules that customise them."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from financeos.ai_agents.llm_providers import LLMProviderFactory
from financeos.ai_agents.orchestrator import (
    FinancialAnalysisService,
    MultiAgentService,
    ProviderFactory,
)
from financeos.ai_agents.types import AgentScope
from financeos.core.security import AuthenticatedUser, get_user_role, get_verified_user
from financeos.schemas.agents import (
    AgentAnswer,
    AgentQuery,
    AnalysisAnswer,
    AnalysisRequest,
    TrainingRuleCreate,
    TrainingRulePayload,
    TrainingRuleUpdate,
)
from financeos.services.training_rules_service import TrainingRulesService
from financeos.web.dependencies import get_db_session

router = APIRouter(tags=["ai"])


def get_provider_factory() -> ProviderFactory:
    """Return the callable building the configured LLM provider."""

    return LLMProviderFactory.create


def get_multi_agent_service(
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> MultiAgentService:
    return MultiAgentService(provider_factory=provider_factory)


def get_analysis_service(
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> FinancialAnalysisService:
    return FinancialAnalysisService(provider_factory=provider_factory)


def get_training_rules_service() -> TrainingRulesService:
    return TrainingRulesService()


def _scope(session: Session, user: AuthenticatedUser) -> AgentScope:
    return AgentScope(user_id=user.user_id, role=get_user_role(session, user.user_id))


@router.post("/functions/ai-multi-agent", response_model=AgentAnswer)
async def ai_multi_agent(
    payload: AgentQuery,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: MultiAgentService = Depends(get_multi_agent_service),
    session: Session = Depends(get_db_session),
) -> AgentAnswer:
    return await service.ask(session, _scope(session, user), payload.agent, payload.question)


@router.post(
    "/functions/ai-financial-analysis",
    response_model=AnalysisAnswer,
    response_model_exclude_none=True,
)
async def ai_financial_analysis(
    payload: AnalysisRequest,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: FinancialAnalysisService = Depends(get_analysis_service),
    session: Session = Depends(get_db_session),
) -> AnalysisAnswer:
    return await service.analyse(session, AgentScope(user_id=user.user_id), payload.question)


@router.get("/ai/training-rules", response_model=list[TrainingRulePayload])
async def list_training_rules(
    rule_type: str | None = None,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TrainingRulesService = Depends(get_training_rules_service),
    session: Session = Depends(get_db_session),
) -> list[TrainingRulePayload]:
    return [
        TrainingRulePayload.model_validate(rule)
        for rule in service.list_rules(session, user.user_id, rule_type)
    ]


@router.post("/ai/training-rules", response_model=TrainingRulePayload, status_code=201)
async def create_training_rule(
    payload: TrainingRuleCreate,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TrainingRulesService = Depends(get_training_rules_service),
    session: Session = Depends(get_db_session),
) -> TrainingRulePayload:
    return TrainingRulePayload.model_validate(service.create(session, user.user_id, payload))


@router.patch("/ai/training-rules/{rule_id}", response_model=TrainingRulePayload)
async def update_training_rule(
    rule_id: int,
    payload: TrainingRuleUpdate,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TrainingRulesService = Depends(get_training_rules_service),
    session: Session = Depends(get_db_session),
) -> TrainingRulePayload:
    return TrainingRulePayload.model_validate(
        service.update(session, user.user_id, rule_id, payload)
    )


@router.delete("/ai/training-rules/{rule_id}", status_code=204)
async def delete_training_rule(
    rule_id: int,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TrainingRulesService = Depends(get_training_rules_service),
    session: Session = Depends(get_db_session),
) -> Response:
    service.delete(session, user.user_id, rule_id)
    return Response(status_code=204)


__all__ = ["router", "get_provider_factory"]
