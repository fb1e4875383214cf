"""Application middleware resolving bearer tokens into principals."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from financeos.core.errors import AuthError
from financeos.core.log import get_logger, log_context
from financeos.core.security import AuthenticatedUser, SecurityProvider

LOGGER = get_logger(__name__)

_DOC_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}


def bearer_token(header: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""

    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Decode the bearer token and expose the principal on ``request.state``.

    Nothing is rejected here; dependencies decide whether a route needs a
    principal and answer 401/403 themselves.
    """

    def __init__(
        self,
        app,
        security_provider: SecurityProvider,
        *,
        exempt_paths: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self._security_provider = security_provider
        self._exempt_paths = set(exempt_paths or ("/auth/login", "/health")) | _DOC_PATHS

    def _is_exempt(self, request: Request) -> bool:
        return request.method == "OPTIONS" or request.url.path in self._exempt_paths

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        user: AuthenticatedUser | None = None
        request.state.auth_error = None

        if not self._is_exempt(request):
            token = bearer_token(request.headers.get("authorization"))
            if token:
                try:
                    user = self._security_provider.decode_token(token)
                except AuthError as exc:
                    LOGGER.info("Failed to decode access token", extra={"reason": exc.message})
                    request.state.auth_error = exc.message

        request.state.user = user
        with log_context.scope(
            user_id=user.user_id if user else None, path=request.url.path
        ):
            return await call_next(request)


__all__ = ["AuthMiddleware", "bearer_token"]
