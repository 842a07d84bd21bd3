"""
Token Claim API - Event Endpoints

- GET /events: Number of registered events (next index)
- POST /events: Register a claim event with an explicit window or a duration
- GET /events/{index}: Event details with claim totals
- PUT /events/{index}/merkle-root: Replace the committed root
- GET /events/{index}/claims/{recipient}: Whether a recipient has claimed
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field, model_validator

from token_claim.api.v1.deps import (
    ADDRESS_PATTERN,
    DIGEST_PATTERN,
    get_caller,
    get_claim_service,
)
from token_claim.crypto.encoding import UINT256_MAX
from token_claim.db.repository import ClaimEvent
from token_claim.services.claim_service import ClaimService

logger = structlog.get_logger(__name__)
router = APIRouter()


# Request/Response Models
class EventCreateRequest(BaseModel):
    """Request to register a claim event."""

    token: str = Field(..., pattern=ADDRESS_PATTERN, description="Token address")
    merkle_root: str = Field(..., pattern=DIGEST_PATTERN, description="Root of the allocation list")
    start_time: int | None = Field(
        default=None,
        ge=0,
        le=UINT256_MAX,
        description="Window start (unix seconds)",
    )
    end_time: int | None = Field(
        default=None,
        ge=0,
        le=UINT256_MAX,
        description="Window end (unix seconds)",
    )
    duration: int | None = Field(
        default=None,
        ge=0,
        le=UINT256_MAX,
        description="Window length in seconds, starting now",
    )

    @model_validator(mode="after")
    def check_window(self) -> "EventCreateRequest":
        explicit = self.start_time is not None or self.end_time is not None
        if self.duration is not None and explicit:
            raise ValueError("Give either duration or start_time/end_time, not both")
        if self.duration is None and (self.start_time is None or self.end_time is None):
            raise ValueError("start_time and end_time are required without duration")
        return self


class MerkleRootUpdateRequest(BaseModel):
    """Request to replace an event root."""

    merkle_root: str = Field(..., pattern=DIGEST_PATTERN)


class EventResponse(BaseModel):
    """Claim event details."""

    index: int
    token: str
    start_time: int
    end_time: int
    merkle_root: str


class EventDetailResponse(EventResponse):
    """Event details with claim totals."""

    claimed_count: int
    claimed_amount: int
    is_open: bool


class EventIndexResponse(BaseModel):
    """Number of registered events."""

    event_index: int


class ClaimStatusResponse(BaseModel):
    """Claim status of one recipient."""

    index: int
    recipient: str
    claimed: bool


def _event_to_response(event: ClaimEvent) -> EventResponse:
    return EventResponse(**event.to_dict())


# Endpoints
@router.get(
    "",
    response_model=EventIndexResponse,
    summary="Event count",
    description="Number of registered events, which is also the next index to be assigned.",
)
async def get_event_index(
    claim_service: ClaimService = Depends(get_claim_service),
) -> EventIndexResponse:
    return EventIndexResponse(event_index=await claim_service.event_index())


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register claim event",
    responses={
        400: {"description": "Invalid time window"},
        403: {"description": "Caller is not the administrator"},
    },
)
async def create_event(
    request: EventCreateRequest,
    caller: str | None = Depends(get_caller),
    claim_service: ClaimService = Depends(get_claim_service),
) -> EventResponse:
    """
    Register a claim event.

    With `duration` the window opens at the current time; otherwise the
    explicit `start_time`/`end_time` window is used as given.
    """
    logger.info(
        "Event registration requested",
        token=request.token,
        start_time=request.start_time,
        end_time=request.end_time,
        duration=request.duration,
    )

    if request.duration is not None:
        event = await claim_service.setup_event_for_duration(
            caller=caller,
            token=request.token,
            duration=request.duration,
            merkle_root=request.merkle_root,
        )
    else:
        event = await claim_service.setup_event(
            caller=caller,
            token=request.token,
            start_time=request.start_time,
            end_time=request.end_time,
            merkle_root=request.merkle_root,
        )

    return _event_to_response(event)


@router.get(
    "/{index}",
    response_model=EventDetailResponse,
    summary="Get event",
    responses={404: {"description": "Event not registered"}},
)
async def get_event(
    index: int = Path(..., ge=0),
    claim_service: ClaimService = Depends(get_claim_service),
) -> dict[str, Any]:
    return await claim_service.get_event_summary(index)


@router.put(
    "/{index}/merkle-root",
    response_model=EventResponse,
    summary="Replace event root",
    responses={
        403: {"description": "Caller is not the administrator"},
        404: {"description": "Event not registered"},
    },
)
async def update_merkle_root(
    request: MerkleRootUpdateRequest,
    index: int = Path(..., ge=0),
    caller: str | None = Depends(get_caller),
    claim_service: ClaimService = Depends(get_claim_service),
) -> EventResponse:
    """Replace the committed root. Recipients who already claimed stay claimed."""
    event = await claim_service.update_merkle_root(
        caller=caller,
        index=index,
        merkle_root=request.merkle_root,
    )
    return _event_to_response(event)


@router.get(
    "/{index}/claims/{recipient}",
    response_model=ClaimStatusResponse,
    summary="Claim status",
)
async def get_claim_status(
    index: int = Path(..., ge=0),
    recipient: str = Path(..., pattern=ADDRESS_PATTERN),
    claim_service: ClaimService = Depends(get_claim_service),
) -> ClaimStatusResponse:
    claimed = await claim_service.is_claimed(index, recipient)
    return ClaimStatusResponse(index=index, recipient=recipient, claimed=claimed)
