"""
Token Claim Service - Event Registry and Claim Ledger

Database operations for claim events and claim records. Both
repositories are bound to the caller's session and never commit: the
unit of work that owns the session decides commit or rollback.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from token_claim.crypto.encoding import digest_to_hex, normalize_address, to_digest

logger = structlog.get_logger(__name__)

# Largest value of the BIGINT event_index column
MAX_EVENT_INDEX = 2**63 - 1


def _index_in_range(index: int) -> bool:
    return 0 <= index <= MAX_EVENT_INDEX


@dataclass(frozen=True)
class ClaimEvent:
    """
    One registered airdrop round.

    Attributes:
        index: Position in the registry (0-based)
        token: Address of the distributed token
        start_time: First second claims are accepted
        end_time: Last second claims are accepted
        merkle_root: Committed root of the allocation list
    """

    index: int
    token: str
    start_time: int
    end_time: int
    merkle_root: bytes

    def is_open(self, now: int) -> bool:
        """Check whether now falls inside the claim window."""
        return self.start_time <= now <= self.end_time

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "index": self.index,
            "token": self.token,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "merkle_root": digest_to_hex(self.merkle_root),
        }


def _row_to_event(row: Any) -> ClaimEvent:
    return ClaimEvent(
        index=row.event_index,
        token=row.token,
        start_time=int(row.start_time),
        end_time=int(row.end_time),
        merkle_root=to_digest(row.merkle_root),
    )


class EventRegistry:
    """
    Append-only, index-addressed collection of claim events.

    The next index is always the current event count: rows are never
    deleted, so an index is never reused.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize registry with database session.

        Args:
            session: Async SQLAlchemy session
        """
        self._session = session

    async def event_index(self) -> int:
        """Number of registered events, which is also the next index."""
        result = await self._session.execute(
            text("SELECT COUNT(*) AS total FROM claim_events")
        )
        row = result.fetchone()
        return row.total if row else 0

    async def append(
        self,
        token: str,
        start_time: int,
        end_time: int,
        merkle_root: bytes,
    ) -> ClaimEvent:
        """
        Store a new event at the next index.

        Args:
            token: Token address
            start_time: Window start (unix seconds)
            end_time: Window end (unix seconds)
            merkle_root: Committed root

        Returns:
            The stored ClaimEvent
        """
        index = await self.event_index()
        event = ClaimEvent(
            index=index,
            token=normalize_address(token),
            start_time=start_time,
            end_time=end_time,
            merkle_root=to_digest(merkle_root),
        )

        await self._session.execute(
            text("""
                INSERT INTO claim_events (
                    event_index, token, start_time, end_time, merkle_root
                ) VALUES (
                    :event_index, :token, :start_time, :end_time, :merkle_root
                )
            """),
            {
                "event_index": event.index,
                "token": event.token,
                "start_time": str(event.start_time),
                "end_time": str(event.end_time),
                "merkle_root": digest_to_hex(event.merkle_root),
            },
        )
        return event

    async def get(self, index: int) -> ClaimEvent | None:
        """
        Get an event by index.

        Returns:
            ClaimEvent or None if the index is not registered
        """
        if not _index_in_range(index):
            return None

        result = await self._session.execute(
            text("""
                SELECT event_index, token, start_time, end_time, merkle_root
                FROM claim_events
                WHERE event_index = :event_index
            """),
            {"event_index": index},
        )
        row = result.fetchone()

        if not row:
            return None

        return _row_to_event(row)

    async def list_events(self, limit: int = 100, offset: int = 0) -> list[ClaimEvent]:
        """List events in index order."""
        result = await self._session.execute(
            text("""
                SELECT event_index, token, start_time, end_time, merkle_root
                FROM claim_events
                ORDER BY event_index
                LIMIT :limit OFFSET :offset
            """),
            {"limit": limit, "offset": offset},
        )
        return [_row_to_event(row) for row in result.fetchall()]

    async def update_root(self, index: int, merkle_root: bytes) -> bool:
        """
        Replace the committed root of an event.

        Returns:
            True if the event exists and was updated
        """
        if not _index_in_range(index):
            return False

        result = await self._session.execute(
            text("""
                UPDATE claim_events
                SET merkle_root = :merkle_root
                WHERE event_index = :event_index
            """),
            {"event_index": index, "merkle_root": digest_to_hex(merkle_root)},
        )
        return result.rowcount == 1


class ClaimLedger:
    """
    Per-event set of recipients who have claimed.

    Membership is permanent. The primary key on (event_index, recipient)
    rejects a second row for the same pair at the storage level.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_claimed(self, index: int, recipient: str) -> bool:
        if not _index_in_range(index):
            return False

        result = await self._session.execute(
            text("""
                SELECT 1
                FROM claims
                WHERE event_index = :event_index AND recipient = :recipient
            """),
            {"event_index": index, "recipient": normalize_address(recipient)},
        )
        return result.fetchone() is not None

    async def mark_claimed(self, index: int, recipient: str, amount: int) -> None:
        """
        Record a claim.

        Callers must check is_claimed first; a duplicate raises an
        IntegrityError from the database.
        """
        await self._session.execute(
            text("""
                INSERT INTO claims (event_index, recipient, amount)
                VALUES (:event_index, :recipient, :amount)
            """),
            {
                "event_index": index,
                "recipient": normalize_address(recipient),
                "amount": str(amount),
            },
        )

    async def count_claims(self, index: int) -> int:
        """Number of recipients who claimed from an event."""
        result = await self._session.execute(
            text("SELECT COUNT(*) AS total FROM claims WHERE event_index = :event_index"),
            {"event_index": index},
        )
        row = result.fetchone()
        return row.total if row else 0

    async def total_claimed(self, index: int) -> int:
        """Sum of amounts claimed from an event."""
        result = await self._session.execute(
            text("SELECT amount FROM claims WHERE event_index = :event_index"),
            {"event_index": index},
        )
        return sum(int(row.amount) for row in result.fetchall())
