"""FastAPI application instance and error rendering."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from financeos.core import get_logger, get_settings
from financeos.core.errors import FinanceError
from financeos.core.security import get_security_provider
from financeos.middleware.auth import AuthMiddleware
from financeos.routers import (
    admin_router,
    agents_router,
    audit_router,
    auth_router,
    health_router,
    imports_router,
    kpis_router,
    lgpd_router,
    notifications_router,
    security_codes_router,
    transactions_router,
)

LOGGER = get_logger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": message}``."""

    @app.exception_handler(FinanceError)
    async def finance_error_handler(request: Request, exc: FinanceError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        LOGGER.info("Rejected request body", extra={"path": request.url.path, "errors": exc.errors()})
        return error_response(400, "Invalid request body")


async def catch_unhandled_errors(request: Request, call_next) -> Response:
    """Render unexpected failures as a 500 ``{"error": ...}`` response.

    Runs inside the CORS and auth middleware so the response carries CORS
    headers and the request's log context.
    """

    try:
        return await call_next(request)
    except Exception:
        LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="FinanceOS", version="0.1.0")

    app.middleware("http")(catch_unhandled_errors)
    app.add_middleware(AuthMiddleware, security_provider=get_security_provider())
    # Added last so it wraps AuthMiddleware and answers preflight requests.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors.allow_origins),
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(security_codes_router)
    app.include_router(kpis_router)
    app.include_router(imports_router)
    app.include_router(agents_router)
    app.include_router(admin_router)
    app.include_router(audit_router)
    app.include_router(lgpd_router)
    app.include_router(notifications_router)
    app.include_router(transactions_router)
    app.include_router(health_router)

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
