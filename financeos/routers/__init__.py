"""FastAPI routers for the finance backend."""

from .admin import router as admin_router
from .agents import router as agents_router
from .audit import router as audit_router
from .auth import router as auth_router
from .health import router as health_router
from .imports import router as imports_router
from .kpis import router as kpis_router
from .lgpd import router as lgpd_router
from .notifications import router as notifications_router
from .security_codes import router as security_codes_router
from .transactions import router as transactions_router

__all__ = [
    "admin_router",
    "agents_router",
    "audit_router",
    "auth_router",
    "health_router",
    "imports_router",
    "kpis_router",
    "lgpd_router",
    "notifications_router",
    "security_codes_router",
    "transactions_router",
]
