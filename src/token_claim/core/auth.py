"""
Token Claim Service - Administrator Authorization

Two layers:
- AdministratorPolicy: the capability predicate the claim core evaluates
  for every administrator-only operation.
- APIKeyAuthMiddleware: optional transport guard in front of the
  administrator routes of the HTTP API.

Claim and read endpoints remain publicly accessible.
"""

import secrets
from collections.abc import Callable

import structlog
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from token_claim.core.config import settings
from token_claim.core.errors import NotAuthorized
from token_claim.crypto.encoding import normalize_address

logger = structlog.get_logger(__name__)

CALLER_HEADER = "X-Caller"
API_KEY_HEADER = "X-API-Key"

# Write routes anyone may call
PUBLIC_WRITE_PATHS = frozenset({
    "/api/v1/claims",
})

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class AdministratorPolicy:
    """
    Capability check for administrator-only operations.

    A pure predicate over the caller identity: the caller is the
    administrator iff its address equals the configured one.
    """

    def __init__(self, administrator: str) -> None:
        self._administrator = normalize_address(administrator)

    @property
    def administrator(self) -> str:
        """Checksum address of the administrator."""
        return self._administrator

    def is_administrator(self, caller: str | None) -> bool:
        if not caller:
            return False
        try:
            return normalize_address(caller) == self._administrator
        except ValueError:
            return False

    def require(self, caller: str | None) -> str:
        """
        Assert the caller holds the administrator capability.

        Returns:
            Normalized caller address

        Raises:
            NotAuthorized: If caller is not the administrator
        """
        if not self.is_administrator(caller):
            logger.warning("Administrator check failed", caller=caller)
            raise NotAuthorized(f"Caller {caller!r} is not the administrator")
        return self._administrator


class APIKeyAuthMiddleware(BaseHTTPMiddleware):
    """
    API key authentication middleware for administrator routes.

    Protects write endpoints (event setup, root updates, treasury) with
    API key validation. Claims and GET requests remain open.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        path = request.url.path

        if not settings.API_AUTH_ENABLED or not settings.API_KEY:
            return await call_next(request)

        if request.method not in WRITE_METHODS or path in PUBLIC_WRITE_PATHS:
            return await call_next(request)

        provided_key = request.headers.get(API_KEY_HEADER)

        if not provided_key:
            logger.warning(
                "Missing API key on administrator endpoint",
                path=path,
                method=request.method,
                client=request.client.host if request.client else "unknown",
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "not_authenticated", "detail": f"Missing {API_KEY_HEADER} header"},
            )

        if not secrets.compare_digest(provided_key, settings.API_KEY):
            logger.warning(
                "Invalid API key",
                path=path,
                method=request.method,
                client=request.client.host if request.client else "unknown",
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "not_authenticated", "detail": "Invalid API key"},
            )

        return await call_next(request)
