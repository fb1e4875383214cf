"""Registry of AI agents: persona, instructions and data snapshot per agent."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from financeos.models import (
    Account,
    AuditLog,
    Integration,
    IntegrationLog,
    LgpdConsent,
    SecurityCode,
    SystemHealthCheck,
    Transaction,
)
from financeos.models.serialize import serialize_row

from .config import AgentConfig, agent_config
from .types import AgentScope

Snapshot = Dict[str, list[dict[str, Any]]]
SnapshotFetcher = Callable[[Session, AgentScope], Snapshot]

LGPD_AUDIT_ACTIONS = (
    "LGPD_CONSENT_GRANTED",
    "LGPD_CONSENT_REVOKED",
    "LGPD_DATA_EXPORT",
    "LGPD_DATA_ANONYMIZED",
)
SECURITY_CODE_COLUMNS = ("user_id", "is_active", "last_used_at", "expires_at")


@dataclass(frozen=True)
class AgentDefinition:
    """Registry entry describing one AI persona and the data it may read."""

    name: str
    persona: str
    instructions: str
    fetch: Optional[SnapshotFetcher] = None

    def snapshot(self, session: Session, scope: AgentScope) -> Snapshot:
        if self.fetch is None:
            return {}
        return self.fetch(session, scope)


def _rows(session: Session, stmt, **kwargs: Any) -> list[dict[str, Any]]:
    return [serialize_row(row, **kwargs) for row in session.execute(stmt).scalars()]


def _financial_snapshot(config: AgentConfig) -> SnapshotFetcher:
    def fetch(session: Session, scope: AgentScope) -> Snapshot:
        return {
            "transactions": _rows(
                session,
                select(Transaction)
                .where(Transaction.tenant_id == scope.user_id)
                .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
                .limit(config.financial_transactions_limit),
            ),
            "accounts": _rows(
                session, select(Account).where(Account.tenant_id == scope.user_id)
            ),
        }

    return fetch


def _security_snapshot(config: AgentConfig) -> SnapshotFetcher:
    def fetch(session: Session, scope: AgentScope) -> Snapshot:
        logs = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        codes = select(SecurityCode).order_by(SecurityCode.created_at.desc(), SecurityCode.id.desc())
        if not scope.is_admin:
            logs = logs.where(AuditLog.user_id == scope.user_id)
            codes = codes.where(SecurityCode.user_id == scope.user_id)
        return {
            "audit_logs": _rows(session, logs.limit(config.security_audit_limit)),
            "security_codes": _rows(
                session, codes.limit(config.security_codes_limit), only=SECURITY_CODE_COLUMNS
            ),
        }

    return fetch


def _monitoring_snapshot(config: AgentConfig) -> SnapshotFetcher:
    def fetch(session: Session, scope: AgentScope) -> Snapshot:
        return {
            "health_checks": _rows(
                session,
                select(SystemHealthCheck)
                .order_by(SystemHealthCheck.checked_at.desc(), SystemHealthCheck.id.desc())
                .limit(config.monitoring_checks_limit),
            )
        }

    return fetch


def _integration_snapshot(config: AgentConfig) -> SnapshotFetcher:
    def fetch(session: Session, scope: AgentScope) -> Snapshot:
        return {
            "integrations": _rows(
                session, select(Integration).where(Integration.user_id == scope.user_id)
            ),
            "integration_logs": _rows(
                session,
                select(IntegrationLog)
                .where(IntegrationLog.user_id == scope.user_id)
                .order_by(IntegrationLog.created_at.desc(), IntegrationLog.id.desc())
                .limit(config.integration_logs_limit),
            ),
        }

    return fetch


def _compliance_snapshot(config: AgentConfig) -> SnapshotFetcher:
    def fetch(session: Session, scope: AgentScope) -> Snapshot:
        return {
            "consents": _rows(
                session, select(LgpdConsent).where(LgpdConsent.user_id == scope.user_id)
            ),
            "compliance_logs": _rows(
                session,
                select(AuditLog)
                .where(
                    AuditLog.user_id == scope.user_id,
                    AuditLog.action.in_(LGPD_AUDIT_ACTIONS),
                )
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .limit(config.compliance_logs_limit),
            ),
        }

    return fetch


class AgentRegistry:
    """Central registry mapping agent identifiers to their specs."""

    def __init__(self, config: AgentConfig | None = None) -> None:
        cfg = config or agent_config
        self._agents: Dict[str, AgentDefinition] = {}
        for definition in (
            AgentDefinition(
                name="financial",
                persona="Você é um agente financeiro especializado.",
                instructions=(
                    "Analise APENAS as transações e contas reais fornecidas. "
                    "Se não houver dados suficientes, diga claramente."
                ),
                fetch=_financial_snapshot(cfg),
            ),
            AgentDefinition(
                name="security",
                persona="Você é um agente de segurança.",
                instructions=(
                    "Analise logs de auditoria e eventos de segurança. Identifique padrões "
                    "suspeitos e recomende ações preventivas baseado APENAS nos dados reais."
                ),
                fetch=_security_snapshot(cfg),
            ),
            AgentDefinition(
                name="monitoring",
                persona="Você é um agente de monitoramento de sistema.",
                instructions=(
                    "Analise a saúde do sistema. Identifique problemas e sugira correções "
                    "baseado APENAS nos dados reais."
                ),
                fetch=_monitoring_snapshot(cfg),
            ),
            AgentDefinition(
                name="integration",
                persona="Você é um agente de integrações.",
                instructions=(
                    "Analise o status das integrações. Identifique falhas e sugira soluções "
                    "baseado APENAS nos dados reais."
                ),
                fetch=_integration_snapshot(cfg),
            ),
            AgentDefinition(
                name="compliance",
                persona="Você é um agente de compliance e LGPD.",
                instructions=(
                    "Analise o status de conformidade. Verifique consentimentos e ações de "
                    "privacidade baseado APENAS nos dados reais."
                ),
                fetch=_compliance_snapshot(cfg),
            ),
            AgentDefinition(
                name="guardian",
                persona="Você é o agente guardião, supervisor de todos os outros agentes.",
                instructions=(
                    "Sua função é garantir que as respostas dos agentes sejam precisas e "
                    "baseadas em dados reais. Avalie a qualidade e segurança das análises."
                ),
            ),
        ):
            self.register(definition)

    def register(self, definition: AgentDefinition) -> None:
        self._agents[definition.name] = definition

    def get(self, name: str) -> Optional[AgentDefinition]:
        return self._agents.get(name)

    def names(self) -> list[str]:
        return list(self._agents)

    def __contains__(self, name: object) -> bool:
        return name in self._agents


__all__ = ["AgentRegistry", "AgentDefinition", "Snapshot", "LGPD_AUDIT_ACTIONS"]
