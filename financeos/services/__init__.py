"""Service layer entrypoints for domain logic."""

from .admin_service import AdminService
from .audit_service import AuditService
from .health_service import HealthService
from .import_service import ImportService
from .kpi_service import KpiService
from .lgpd_service import LgpdService
from .notifications_service import NotificationsService
from .security_code_service import SecurityCodeService
from .training_rules_service import TrainingRulesService
from .transactions_service import AccountsService, TransactionsService

__all__ = [
    "AccountsService",
    "AdminService",
    "AuditService",
    "HealthService",
    "ImportService",
    "KpiService",
    "LgpdService",
    "NotificationsService",
    "SecurityCodeService",
    "TrainingRulesService",
    "TransactionsService",
]
