"""
Token Claim Service - Claim Engine

Orchestrates event registration, root correction and claiming against
the event registry, the claim ledger and the token collaborator.

The engine never commits. It runs inside a unit of work opened by
ClaimService, and any exception it raises rolls back every change of
the invocation, the ledger mark and the token transfer included.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError

from token_claim.core.auth import AdministratorPolicy
from token_claim.core.errors import (
    AlreadyClaimed,
    Expired,
    InvalidTimeWindow,
    NotStarted,
    ProofInvalid,
    TransferFailed,
    UnknownEvent,
)
from token_claim.crypto.encoding import (
    UINT256_MAX,
    check_uint256,
    digest_to_hex,
    normalize_address,
    to_digest,
)
from token_claim.crypto.merkle import ProofInput, compute_leaf_hash, normalize_proof, verify_proof
from token_claim.db.repository import ClaimEvent, ClaimLedger, EventRegistry
from token_claim.services.tokens import Token

logger = structlog.get_logger(__name__)

Clock = Callable[[], int]
TokenResolver = Callable[[str], Token]


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


@dataclass
class ClaimReceipt:
    """Result of a successful claim."""

    index: int
    recipient: str
    amount: int
    token: str
    claimed_at: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "index": self.index,
            "recipient": self.recipient,
            "amount": self.amount,
            "token": self.token,
            "claimed_at": self.claimed_at,
        }


class ClaimEngine:
    """
    Claim core bound to one unit of work.

    Claim checks run in a fixed order so rejections are deterministic:
    1. Event exists
    2. Window has opened
    3. Window has not closed
    4. Recipient has not claimed
    5. Proof recomputes the event root
    6. Ledger mark
    7. Token transfer to the recipient
    """

    def __init__(
        self,
        registry: EventRegistry,
        ledger: ClaimLedger,
        tokens: TokenResolver,
        policy: AdministratorPolicy,
        clock: Clock = system_clock,
    ) -> None:
        """
        Initialize claim engine.

        Args:
            registry: Event registry bound to the current session
            ledger: Claim ledger bound to the current session
            tokens: Resolves a token address to a treasury-bound Token
            policy: Administrator capability check
            clock: Source of the current unix time
        """
        self._registry = registry
        self._ledger = ledger
        self._tokens = tokens
        self._policy = policy
        self._clock = clock

    async def event_index(self) -> int:
        """Number of registered events (the next index to assign)."""
        return await self._registry.event_index()

    async def get_event(self, index: int) -> ClaimEvent:
        """
        Get a registered event.

        Raises:
            UnknownEvent: If index is not registered
        """
        event = await self._registry.get(index)
        if event is None:
            raise UnknownEvent(f"Event {index} is not registered")
        return event

    async def is_claimed(self, index: int, recipient: str) -> bool:
        return await self._ledger.is_claimed(index, recipient)

    async def setup_event(
        self,
        caller: str,
        token: str,
        start_time: int,
        end_time: int,
        merkle_root: bytes | str,
    ) -> int:
        """
        Register a claim event with an explicit window.

        Args:
            caller: Identity of the caller (must be the administrator)
            token: Address of the token to distribute
            start_time: Window start (unix seconds, inclusive)
            end_time: Window end (unix seconds, inclusive)
            merkle_root: Root of the allocation list

        Returns:
            Index of the new event

        Raises:
            NotAuthorized: If caller is not the administrator
            InvalidTimeWindow: If start_time > end_time
        """
        self._policy.require(caller)
        check_uint256(start_time, "start_time")
        check_uint256(end_time, "end_time")
        root = to_digest(merkle_root)

        if start_time > end_time:
            raise InvalidTimeWindow(
                f"Start time {start_time} is after end time {end_time}"
            )

        event = await self._registry.append(
            token=token,
            start_time=start_time,
            end_time=end_time,
            merkle_root=root,
        )

        logger.info(
            "Claim event registered",
            index=event.index,
            token=event.token,
            start_time=start_time,
            end_time=end_time,
            merkle_root=digest_to_hex(root),
        )
        return event.index

    async def setup_event_for_duration(
        self,
        caller: str,
        token: str,
        duration: int,
        merkle_root: bytes | str,
    ) -> int:
        """
        Register a claim event that opens now and lasts `duration` seconds.

        Raises:
            NotAuthorized: If caller is not the administrator
            InvalidTimeWindow: If duration is negative or the end time
                does not fit an unsigned 256-bit value
        """
        self._policy.require(caller)

        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise InvalidTimeWindow(f"Duration must be a non-negative integer, got {duration!r}")

        now = self._clock()
        end_time = now + duration
        if end_time > UINT256_MAX:
            raise InvalidTimeWindow(f"End time overflows uint256 for duration {duration}")

        return await self.setup_event(caller, token, now, end_time, merkle_root)

    async def update_merkle_root(
        self,
        caller: str,
        index: int,
        merkle_root: bytes | str,
    ) -> ClaimEvent:
        """
        Replace the committed root of an event.

        Claims already recorded under the old root stay final.

        Raises:
            NotAuthorized: If caller is not the administrator
            UnknownEvent: If index is not registered
        """
        self._policy.require(caller)
        root = to_digest(merkle_root)

        if not await self._registry.update_root(index, root):
            raise UnknownEvent(f"Event {index} is not registered")

        logger.info(
            "Merkle root updated",
            index=index,
            merkle_root=digest_to_hex(root),
        )
        return await self.get_event(index)

    async def claim(
        self,
        index: int,
        proof: ProofInput,
        recipient: str,
        amount: int,
    ) -> ClaimReceipt:
        """
        Claim an allocation on behalf of a recipient.

        Anyone may submit the claim; the payout always goes to the
        proven recipient.

        Args:
            index: Event index
            proof: Ordered sibling digests from leaf to root
            recipient: Allocation recipient
            amount: Allocation amount

        Returns:
            ClaimReceipt for the payout

        Raises:
            UnknownEvent, NotStarted, Expired, AlreadyClaimed,
            ProofInvalid, TransferFailed
        """
        event = await self.get_event(index)

        recipient = normalize_address(recipient)
        check_uint256(amount, "amount")
        siblings = normalize_proof(proof)

        now = self._clock()

        if now < event.start_time:
            raise NotStarted(f"Event {index} opens at {event.start_time}")

        if now > event.end_time:
            raise Expired(f"Event {index} closed at {event.end_time}")

        if await self._ledger.is_claimed(index, recipient):
            raise AlreadyClaimed(f"{recipient} already claimed from event {index}")

        leaf = compute_leaf_hash(recipient, amount)
        if not verify_proof(leaf, siblings, event.merkle_root):
            raise ProofInvalid(f"Proof does not match root of event {index}")

        try:
            await self._ledger.mark_claimed(index, recipient, amount)
        except IntegrityError as e:
            raise AlreadyClaimed(f"{recipient} already claimed from event {index}") from e

        token = self._tokens(event.token)
        if not await token.transfer(recipient, amount):
            raise TransferFailed(
                f"Transfer of {amount} {event.token} to {recipient} was refused"
            )

        logger.info(
            "Claim paid",
            index=index,
            recipient=recipient,
            amount=amount,
            token=event.token,
        )

        return ClaimReceipt(
            index=index,
            recipient=recipient,
            amount=amount,
            token=event.token,
            claimed_at=now,
        )
