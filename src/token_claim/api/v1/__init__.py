"""
Token Claim API v1

Endpoints:
- GET  /events - Number of registered events
- POST /events - Register a claim event (administrator)
- GET  /events/{index} - Event details
- PUT  /events/{index}/merkle-root - Replace an event root (administrator)
- GET  /events/{index}/claims/{recipient} - Claim status
- POST /claims - Claim an allocation
- POST /treasury/withdraw - Withdraw treasury tokens (administrator)
- POST /treasury/deposit - Fund the treasury (administrator)
- GET  /treasury/{token}/balances/{holder} - Token balance
"""

from fastapi import APIRouter

from token_claim.api.v1.endpoints import claims, events, treasury

router = APIRouter()
router.include_router(events.router, prefix="/events", tags=["Events"])
router.include_router(claims.router, prefix="/claims", tags=["Claims"])
router.include_router(treasury.router, prefix="/treasury", tags=["Treasury"])
