"""
Token Claim Service - Token Collaborator

The claim core talks to fungible tokens through the Token protocol:
a balance lookup and a transfer out of the treasury account.

LedgerToken is the bundled implementation. Its balances live in the
service database, so a transfer joins the transaction of the operation
that requested it and rolls back with it.
"""

from typing import Protocol, runtime_checkable

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from token_claim.crypto.encoding import check_uint256, normalize_address

logger = structlog.get_logger(__name__)


@runtime_checkable
class Token(Protocol):
    """Fungible token as seen from the treasury account."""

    address: str

    async def balance_of(self, holder: str) -> int:
        ...

    async def transfer(self, to: str, amount: int) -> bool:
        """Move amount from the treasury to `to`; False if refused."""
        ...


class LedgerToken:
    """
    Database-backed fungible token bound to the treasury account.

    Transfers never overdraw: a transfer larger than the treasury
    balance is refused and changes nothing.
    """

    def __init__(self, session: AsyncSession, address: str, owner: str) -> None:
        self._session = session
        self.address = normalize_address(address)
        self.owner = normalize_address(owner)

    async def balance_of(self, holder: str) -> int:
        result = await self._session.execute(
            text("""
                SELECT balance
                FROM token_balances
                WHERE token = :token AND holder = :holder
            """),
            {"token": self.address, "holder": normalize_address(holder)},
        )
        row = result.fetchone()
        return int(row.balance) if row else 0

    async def _set_balance(self, holder: str, balance: int) -> None:
        await self._session.execute(
            text("""
                INSERT INTO token_balances (token, holder, balance)
                VALUES (:token, :holder, :balance)
                ON CONFLICT (token, holder) DO UPDATE SET
                    balance = EXCLUDED.balance
            """),
            {
                "token": self.address,
                "holder": normalize_address(holder),
                "balance": str(check_uint256(balance, "balance")),
            },
        )

    async def transfer(self, to: str, amount: int) -> bool:
        """
        Transfer amount from the treasury to a recipient.

        Returns:
            True on success, False if the treasury balance is too low
        """
        check_uint256(amount, "amount")
        to = normalize_address(to)

        available = await self.balance_of(self.owner)
        if available < amount:
            logger.warning(
                "Token transfer refused",
                token=self.address,
                to=to,
                amount=amount,
                available=available,
            )
            return False

        if to != self.owner:
            await self._set_balance(self.owner, available - amount)
            await self._set_balance(to, await self.balance_of(to) + amount)

        logger.debug("Token transfer", token=self.address, to=to, amount=amount)
        return True

    async def mint(self, to: str, amount: int) -> int:
        """
        Credit new units to a holder.

        Returns:
            The holder's new balance
        """
        check_uint256(amount, "amount")
        balance = await self.balance_of(to) + amount
        await self._set_balance(to, balance)
        return balance


class TokenBook:
    """Resolves token addresses to LedgerToken handles for the treasury."""

    def __init__(self, session: AsyncSession, treasury: str) -> None:
        self._session = session
        self._treasury = normalize_address(treasury)
        self._tokens: dict[str, LedgerToken] = {}

    @property
    def treasury(self) -> str:
        return self._treasury

    def get(self, address: str) -> LedgerToken:
        address = normalize_address(address)
        token = self._tokens.get(address)
        if token is None:
            token = LedgerToken(self._session, address, self._treasury)
            self._tokens[address] = token
        return token
