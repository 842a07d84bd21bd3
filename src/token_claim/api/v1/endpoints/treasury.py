"""
Token Claim API - Treasury Endpoints

- POST /treasury/withdraw: Send treasury tokens to the administrator
- POST /treasury/deposit: Credit the treasury on the bundled token ledger
- GET /treasury/{token}/balances/{holder}: Token balance of any holder
"""

import structlog
from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from token_claim.api.v1.deps import ADDRESS_PATTERN, get_caller, get_claim_service
from token_claim.crypto.encoding import UINT256_MAX
from token_claim.services.claim_service import ClaimService

logger = structlog.get_logger(__name__)
router = APIRouter()


class TreasuryRequest(BaseModel):
    """Token movement request."""

    token: str = Field(..., pattern=ADDRESS_PATTERN)
    amount: int = Field(..., ge=0, le=UINT256_MAX)


class TreasuryResponse(BaseModel):
    """Treasury balance after a movement."""

    token: str
    treasury: str
    balance: int


class BalanceResponse(BaseModel):
    """Balance of one holder."""

    token: str
    holder: str
    balance: int


@router.post(
    "/withdraw",
    response_model=TreasuryResponse,
    summary="Withdraw treasury tokens",
    responses={
        403: {"description": "Caller is not the administrator"},
        409: {"description": "Treasury balance too low"},
    },
)
async def withdraw_token(
    request: TreasuryRequest,
    caller: str | None = Depends(get_caller),
    claim_service: ClaimService = Depends(get_claim_service),
) -> TreasuryResponse:
    """
    Withdraw tokens to the administrator.

    Independent of event state: this can remove tokens that open
    events still owe to recipients.
    """
    logger.info("Withdrawal requested", token=request.token, amount=request.amount)

    remaining = await claim_service.withdraw_token(caller, request.token, request.amount)
    return TreasuryResponse(
        token=request.token,
        treasury=claim_service.treasury,
        balance=remaining,
    )


@router.post(
    "/deposit",
    response_model=TreasuryResponse,
    summary="Fund the treasury",
    responses={403: {"description": "Caller is not the administrator"}},
)
async def deposit(
    request: TreasuryRequest,
    caller: str | None = Depends(get_caller),
    claim_service: ClaimService = Depends(get_claim_service),
) -> TreasuryResponse:
    balance = await claim_service.deposit(caller, request.token, request.amount)
    return TreasuryResponse(
        token=request.token,
        treasury=claim_service.treasury,
        balance=balance,
    )


@router.get(
    "/{token}/balances/{holder}",
    response_model=BalanceResponse,
    summary="Token balance",
)
async def get_balance(
    token: str = Path(..., pattern=ADDRESS_PATTERN),
    holder: str = Path(..., pattern=ADDRESS_PATTERN),
    claim_service: ClaimService = Depends(get_claim_service),
) -> BalanceResponse:
    balance = await claim_service.balance_of(token, holder)
    return BalanceResponse(token=token, holder=holder, balance=balance)
