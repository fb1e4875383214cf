"""CRUD for user-authored AI training rules."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.ai_agents.registry import AgentRegistry
from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.models import AITrainingRule
from financeos.schemas.agents import TrainingRuleCreate, TrainingRuleUpdate

LOGGER = get_logger(__name__)


class TrainingRulesService:
    """Rules are private to their author and scoped to one agent."""

    def __init__(self, registry: AgentRegistry | None = None) -> None:
        self._registry = registry or AgentRegistry()

    @staticmethod
    def list_rules(
        session: Session, user_id: int, rule_type: str | None = None
    ) -> list[AITrainingRule]:
        stmt = select(AITrainingRule).where(AITrainingRule.user_id == user_id)
        if rule_type:
            stmt = stmt.where(AITrainingRule.rule_type == rule_type)
        stmt = stmt.order_by(AITrainingRule.priority.desc(), AITrainingRule.id.asc())
        return list(session.execute(stmt).scalars())

    @staticmethod
    def _get(session: Session, user_id: int, rule_id: int) -> AITrainingRule:
        rule = session.execute(
            select(AITrainingRule).where(
                AITrainingRule.id == rule_id, AITrainingRule.user_id == user_id
            )
        ).scalar_one_or_none()
        if rule is None:
            raise NotFoundError("Rule not found")
        return rule

    @staticmethod
    def _commit(session: Session, what: str) -> None:
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to %s training rule", what)
            raise UpstreamError(f"Failed to {what} rule") from exc

    def create(self, session: Session, user_id: int, payload: TrainingRuleCreate) -> AITrainingRule:
        if payload.rule_type not in self._registry:
            raise ValidationError("Invalid agent type")
        if not payload.rule_content.strip():
            raise ValidationError("Rule content is required")

        rule = AITrainingRule(
            user_id=user_id,
            rule_type=payload.rule_type,
            rule_content=payload.rule_content.strip(),
            priority=payload.priority,
            is_active=payload.is_active,
        )
        session.add(rule)
        self._commit(session, "create")
        LOGGER.info("Training rule %s created for agent %s", rule.id, rule.rule_type)
        return rule

    def update(
        self, session: Session, user_id: int, rule_id: int, payload: TrainingRuleUpdate
    ) -> AITrainingRule:
        rule = self._get(session, user_id, rule_id)
        if payload.rule_content is not None:
            if not payload.rule_content.strip():
                raise ValidationError("Rule content is required")
            rule.rule_content = payload.rule_content.strip()
        if payload.priority is not None:
            rule.priority = payload.priority
        if payload.is_active is not None:
            rule.is_active = payload.is_active
        self._commit(session, "update")
        return rule

    def delete(self, session: Session, user_id: int, rule_id: int) -> None:
        rule = self._get(session, user_id, rule_id)
        session.delete(rule)
        self._commit(session, "delete")


__all__ = ["TrainingRulesService"]
