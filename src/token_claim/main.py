"""
Token Claim Service - Main Entry Point

Provides APIs for registering airdrop claim events, claiming allocations
with Merkle proofs and recovering treasury tokens.
"""

import signal
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from starlette.responses import Response

from token_claim.api.v1 import router as api_v1_router
from token_claim.core.auth import APIKeyAuthMiddleware
from token_claim.core.config import settings
from token_claim.core.errors import ClaimServiceError
from token_claim.core.logging import setup_logging
from token_claim.db import close_db, init_db
from token_claim.metrics import get_claim_metrics
from token_claim.services.claim_service import ClaimService

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "Starting Token Claim Service",
        version=settings.VERSION,
        environment=settings.ENV,
        administrator=settings.ADMIN_ADDRESS,
        treasury=settings.TREASURY_ADDRESS,
    )

    await init_db()

    claim_service = ClaimService()
    app.state.claim_service = claim_service

    get_claim_metrics().set_service_info(
        version=settings.VERSION,
        environment=settings.ENV,
        administrator=claim_service.administrator,
    )
    logger.info("Claim metrics initialized")

    yield

    logger.info("Shutting down Token Claim Service")
    await close_db()
    logger.info("Token Claim Service shutdown complete")


async def claim_error_handler(request: Request, exc: ClaimServiceError) -> JSONResponse:
    """Map claim rejections to their HTTP status and stable code."""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Malformed addresses, digests or amounts that passed request parsing."""
    logger.info("Rejected malformed input", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_input", "detail": str(exc)},
    )


def create_application(claim_service: ClaimService | None = None) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        claim_service: Preconfigured service; when given, the database
            lifespan is skipped and the service is used as is
    """
    app = FastAPI(
        title="Token Claim API",
        description="Merkle airdrop claims with per-event time windows",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=None if claim_service else lifespan,
    )

    if claim_service:
        app.state.claim_service = claim_service

    app.add_middleware(APIKeyAuthMiddleware)
    app.add_exception_handler(ClaimServiceError, claim_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    app.include_router(api_v1_router, prefix="/api/v1")

    if settings.METRICS_ENABLED:
        app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health() -> dict:
        """Overall service health check."""
        return {
            "status": "healthy",
            "service": "token-claim",
            "version": settings.VERSION,
        }

    @app.get("/ready")
    async def ready(request: Request) -> Response:
        """
        Readiness probe for Kubernetes.

        Checks database connectivity through the claim service.
        """
        claim_service = getattr(request.app.state, "claim_service", None)
        if not claim_service:
            return Response(status_code=503, content="not ready - service not initialized")

        try:
            await claim_service.event_index()
            return Response(status_code=200, content="ready")
        except Exception as e:
            logger.error("Readiness check failed - database unreachable", error=str(e))
            return Response(status_code=503, content="not ready - database unavailable")

    @app.get("/live")
    async def live() -> Response:
        """Liveness probe for Kubernetes."""
        return Response(status_code=200, content="alive")

    @app.get("/status")
    async def service_status(request: Request) -> dict:
        """Detailed service status."""
        claim_service = getattr(request.app.state, "claim_service", None)

        if claim_service:
            return {
                "service": "token-claim",
                "version": settings.VERSION,
                "environment": settings.ENV,
                "administrator": claim_service.administrator,
                "treasury": claim_service.treasury,
                "event_index": await claim_service.event_index(),
            }
        return {
            "service": "token-claim",
            "version": settings.VERSION,
            "error": "Claim service not initialized",
        }

    return app


app = create_application()


def handle_signal(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, initiating shutdown")
    sys.exit(0)


def main() -> None:
    """Run the service."""
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info(
        "Starting Token Claim service",
        host=settings.HOST,
        port=settings.PORT,
    )

    uvicorn.run(
        "token_claim.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
