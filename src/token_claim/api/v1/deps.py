"""
Token Claim API - Shared Dependencies
"""

from fastapi import Header, HTTPException, Request, status

from token_claim.core.auth import CALLER_HEADER
from token_claim.services.claim_service import ClaimService

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
DIGEST_PATTERN = r"^0x[0-9a-fA-F]{64}$"


def get_claim_service(request: Request) -> ClaimService:
    """Claim service stored in app state by the lifespan handler."""
    claim_service = getattr(request.app.state, "claim_service", None)
    if not claim_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Claim service not initialized",
        )
    return claim_service


def get_caller(caller: str | None = Header(default=None, alias=CALLER_HEADER)) -> str | None:
    """Caller identity asserted by the client."""
    return caller
