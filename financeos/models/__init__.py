"""SQLAlchemy models for the FinanceOS schema."""

from .ai import AIInsight, AITrainingRule
from .audit import AuditLog
from .base import Base
from .compliance import LgpdConsent
from .finance import Account, AccountStatus, KpiCacheEntry, Transaction, TransactionType
from .identity import Profile, ProfileStatus, Role, SecurityCode, SecurityCodeAttempt, UserRole
from .integrations import Integration, IntegrationLog
from .monitoring import HealthStatus, SystemHealthCheck
from .notifications import Notification, NotificationType

__all__ = [
    "AIInsight",
    "AITrainingRule",
    "Account",
    "AccountStatus",
    "AuditLog",
    "Base",
    "HealthStatus",
    "Integration",
    "IntegrationLog",
    "KpiCacheEntry",
    "LgpdConsent",
    "Notification",
    "NotificationType",
    "Profile",
    "ProfileStatus",
    "Role",
    "SecurityCode",
    "SecurityCodeAttempt",
    "SystemHealthCheck",
    "Transaction",
    "TransactionType",
    "UserRole",
]
