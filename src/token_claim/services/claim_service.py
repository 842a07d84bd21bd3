"""
Token Claim Service - Claim Management Service

Runs every registry, ledger and treasury operation as one serialized,
all-or-nothing unit of work:
- a process-wide asyncio.Lock admits one operation at a time
- on PostgreSQL a transaction-scoped advisory lock extends that to every
  worker process, so treasury balance updates and event index assignment
  never interleave; SQLite deployments are limited to one worker
- each operation gets its own session and database transaction
- any exception rolls the transaction back, ledger marks and token
  balance changes included
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from token_claim.core.auth import AdministratorPolicy
from token_claim.core.config import settings
from token_claim.core.errors import ClaimServiceError
from token_claim.crypto.encoding import normalize_address
from token_claim.crypto.merkle import ProofInput
from token_claim.db.repository import ClaimEvent, ClaimLedger, EventRegistry
from token_claim.db.session import acquire_serialization_lock, async_session_factory
from token_claim.metrics import ClaimMetrics, get_claim_metrics
from token_claim.services.claim_engine import (
    ClaimEngine,
    ClaimReceipt,
    Clock,
    system_clock,
)
from token_claim.services.tokens import TokenBook
from token_claim.services.treasury import TreasuryControl

logger = structlog.get_logger(__name__)


@dataclass
class UnitOfWork:
    """Collaborators bound to one session and transaction."""

    engine: ClaimEngine
    treasury: TreasuryControl
    ledger: ClaimLedger


class ClaimService:
    """
    Claim management service.

    Orchestrates:
    - Event registration and root corrections
    - Claims with proof verification
    - Treasury withdrawals and deposits
    - Metrics for every operation
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        administrator: str | None = None,
        treasury: str | None = None,
        clock: Clock = system_clock,
        metrics: ClaimMetrics | None = None,
    ) -> None:
        """
        Initialize claim service.

        Args:
            session_factory: Session factory (defaults to the configured database)
            administrator: Administrator address (defaults to ADMIN_ADDRESS)
            treasury: Treasury account address (defaults to TREASURY_ADDRESS)
            clock: Source of the current unix time
            metrics: Metrics sink (defaults to the global instance)
        """
        self._session_factory = session_factory or async_session_factory
        self._policy = AdministratorPolicy(administrator or settings.ADMIN_ADDRESS)
        self._treasury = normalize_address(treasury or settings.TREASURY_ADDRESS)
        if self._treasury == self._policy.administrator:
            raise ValueError("Treasury account must differ from the administrator")
        self._clock = clock
        self._metrics = metrics or get_claim_metrics()
        self._lock = asyncio.Lock()

    @property
    def administrator(self) -> str:
        return self._policy.administrator

    @property
    def treasury(self) -> str:
        return self._treasury

    @asynccontextmanager
    async def unit_of_work(self, operation: str) -> AsyncIterator[UnitOfWork]:
        """
        Open a serialized transaction for one operation.

        Commits when the block exits normally, rolls back on any
        exception and re-raises it.
        """
        started = time.perf_counter()

        async with self._lock:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        await acquire_serialization_lock(session)
                        tokens = TokenBook(session, self._treasury)
                        ledger = ClaimLedger(session)
                        yield UnitOfWork(
                            engine=ClaimEngine(
                                registry=EventRegistry(session),
                                ledger=ledger,
                                tokens=tokens.get,
                                policy=self._policy,
                                clock=self._clock,
                            ),
                            treasury=TreasuryControl(tokens.get, self._policy),
                            ledger=ledger,
                        )
            finally:
                self._metrics.observe_operation(operation, time.perf_counter() - started)

    # Read surface

    async def event_index(self) -> int:
        async with self.unit_of_work("event_index") as uow:
            return await uow.engine.event_index()

    async def get_event(self, index: int) -> ClaimEvent:
        async with self.unit_of_work("get_event") as uow:
            return await uow.engine.get_event(index)

    async def get_event_summary(self, index: int) -> dict[str, Any]:
        """Event details with claim totals."""
        async with self.unit_of_work("get_event") as uow:
            event = await uow.engine.get_event(index)
            summary = event.to_dict()
            summary["claimed_count"] = await uow.ledger.count_claims(index)
            summary["claimed_amount"] = await uow.ledger.total_claimed(index)
            summary["is_open"] = event.is_open(self._clock())
            return summary

    async def is_claimed(self, index: int, recipient: str) -> bool:
        async with self.unit_of_work("is_claimed") as uow:
            return await uow.engine.is_claimed(index, recipient)

    async def balance_of(self, token: str, holder: str) -> int:
        async with self.unit_of_work("balance_of") as uow:
            return await uow.treasury.balance_of(token, holder)

    # Administrator surface

    async def setup_event(
        self,
        caller: str,
        token: str,
        start_time: int,
        end_time: int,
        merkle_root: bytes | str,
    ) -> ClaimEvent:
        """Register an event with an explicit window."""
        async with self.unit_of_work("setup_event") as uow:
            index = await uow.engine.setup_event(caller, token, start_time, end_time, merkle_root)
            event = await uow.engine.get_event(index)

        self._metrics.record_event_registered()
        return event

    async def setup_event_for_duration(
        self,
        caller: str,
        token: str,
        duration: int,
        merkle_root: bytes | str,
    ) -> ClaimEvent:
        """Register an event that opens now and lasts `duration` seconds."""
        async with self.unit_of_work("setup_event") as uow:
            index = await uow.engine.setup_event_for_duration(caller, token, duration, merkle_root)
            event = await uow.engine.get_event(index)

        self._metrics.record_event_registered()
        return event

    async def update_merkle_root(
        self,
        caller: str,
        index: int,
        merkle_root: bytes | str,
    ) -> ClaimEvent:
        async with self.unit_of_work("update_merkle_root") as uow:
            event = await uow.engine.update_merkle_root(caller, index, merkle_root)

        self._metrics.record_root_update()
        return event

    async def withdraw_token(self, caller: str, token: str, amount: int) -> int:
        """Withdraw treasury tokens to the administrator; returns the remaining balance."""
        async with self.unit_of_work("withdraw_token") as uow:
            remaining = await uow.treasury.withdraw_token(caller, token, amount)

        self._metrics.record_treasury_movement("withdraw")
        return remaining

    async def deposit(self, caller: str, token: str, amount: int) -> int:
        """Credit the treasury; returns the new balance."""
        async with self.unit_of_work("deposit") as uow:
            balance = await uow.treasury.deposit(caller, token, amount)

        self._metrics.record_treasury_movement("deposit")
        return balance

    # Public write surface

    async def claim(
        self,
        index: int,
        proof: ProofInput,
        recipient: str,
        amount: int,
    ) -> ClaimReceipt:
        """
        Claim an allocation.

        Rejections are logged and counted by error code, then re-raised
        after the transaction has rolled back.
        """
        try:
            async with self.unit_of_work("claim") as uow:
                receipt = await uow.engine.claim(index, proof, recipient, amount)
        except ClaimServiceError as e:
            self._metrics.record_claim_rejected(e.code)
            logger.warning(
                "Claim rejected",
                index=index,
                recipient=recipient,
                amount=amount,
                reason=e.code,
                error=str(e),
            )
            raise

        self._metrics.record_claim(receipt.token, receipt.amount)
        return receipt
