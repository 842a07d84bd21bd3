"""
Token Claim API - Claim Endpoint

- POST /claims: Claim an allocation with a Merkle proof

Anyone may submit a claim; the payout always goes to the recipient
named in the request.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from token_claim.api.v1.deps import ADDRESS_PATTERN, DIGEST_PATTERN, get_claim_service
from token_claim.crypto.encoding import UINT256_MAX
from token_claim.services.claim_service import ClaimService

logger = structlog.get_logger(__name__)
router = APIRouter()

ProofElement = Annotated[str, Field(pattern=DIGEST_PATTERN)]


class ClaimRequest(BaseModel):
    """Request to claim an allocation."""

    index: int = Field(..., ge=0, description="Event index")
    recipient: str = Field(..., pattern=ADDRESS_PATTERN)
    amount: int = Field(..., ge=0, le=UINT256_MAX, description="Allocation in token base units")
    proof: list[ProofElement] = Field(
        default_factory=list,
        description="Sibling digests from leaf to root (0x-prefixed hex)",
    )


class ClaimResponse(BaseModel):
    """Successful claim."""

    index: int
    recipient: str
    amount: int
    token: str
    claimed_at: int


@router.post(
    "",
    response_model=ClaimResponse,
    summary="Claim allocation",
    responses={
        400: {"description": "Proof does not match the event root"},
        404: {"description": "Event not registered"},
        409: {"description": "Not started or already claimed"},
        410: {"description": "Claim window closed"},
        502: {"description": "Token transfer refused"},
    },
)
async def claim(
    request: ClaimRequest,
    claim_service: ClaimService = Depends(get_claim_service),
) -> ClaimResponse:
    """
    Claim an allocation.

    Checks, in order: event exists, window opened, window not closed,
    recipient not yet claimed, proof valid. Then records the claim and
    transfers the tokens in the same transaction.
    """
    logger.info(
        "Claim requested",
        index=request.index,
        recipient=request.recipient,
        amount=request.amount,
        proof_length=len(request.proof),
    )

    receipt = await claim_service.claim(
        index=request.index,
        proof=request.proof,
        recipient=request.recipient,
        amount=request.amount,
    )
    return ClaimResponse(**receipt.to_dict())
