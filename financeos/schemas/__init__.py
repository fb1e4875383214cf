"""Pydantic schemas for request and response payloads."""

from .admin import AdminActionRequest, AdminActionResult, AdminUserRow, IssuedSecurityCode
from .audit import AuditEventRequest, AuditEventResult
from .agents import (
    AgentAnswer,
    AgentQuery,
    AnalysisAnswer,
    AnalysisRequest,
    AnalysisSummary,
    TrainingRuleCreate,
    TrainingRulePayload,
    TrainingRuleUpdate,
)
from .health import HealthCheckResult, HealthReport
from .imports import ImportRequest, ImportResult, IntegrationLogPayload, IntegrationPayload
from .kpis import FinancialKpis, KpiCacheItem, MonthlyBucket
from .lgpd import ConsentPayload, LgpdRequest
from .notifications import NotificationCreate, NotificationPayload
from .security import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    SecurityCodeRequest,
    SecurityCodeResult,
)
from .transactions import (
    AccountCreate,
    AccountPayload,
    TransactionCreate,
    TransactionFilters,
    TransactionPayload,
)

__all__ = [
    "AccountCreate",
    "AccountPayload",
    "AdminActionRequest",
    "AdminActionResult",
    "AdminUserRow",
    "AgentAnswer",
    "AgentQuery",
    "AnalysisAnswer",
    "AnalysisRequest",
    "AnalysisSummary",
    "AuditEventRequest",
    "AuditEventResult",
    "ConsentPayload",
    "CurrentUser",
    "FinancialKpis",
    "HealthCheckResult",
    "HealthReport",
    "ImportRequest",
    "ImportResult",
    "IntegrationLogPayload",
    "IntegrationPayload",
    "IssuedSecurityCode",
    "KpiCacheItem",
    "LgpdRequest",
    "LoginRequest",
    "LoginResponse",
    "MonthlyBucket",
    "NotificationCreate",
    "NotificationPayload",
    "SecurityCodeRequest",
    "SecurityCodeResult",
    "TrainingRuleCreate",
    "TrainingRulePayload",
    "TrainingRuleUpdate",
    "TransactionCreate",
    "TransactionFilters",
    "TransactionPayload",
]
