"""
Token Claim Service - Treasury Control

Administrator-only movement of the tokens held by the treasury account.

Withdrawals ignore event state entirely: they can drain funds that
outstanding allocations would need. This is an operational escape
hatch, not a reservation mechanism.
"""

from collections.abc import Callable

import structlog

from token_claim.core.auth import AdministratorPolicy
from token_claim.core.errors import InsufficientBalance, TransferFailed
from token_claim.crypto.encoding import check_uint256
from token_claim.services.tokens import LedgerToken

logger = structlog.get_logger(__name__)


class TreasuryControl:
    """Recovery and funding of treasury token balances."""

    def __init__(
        self,
        tokens: Callable[[str], LedgerToken],
        policy: AdministratorPolicy,
    ) -> None:
        """
        Args:
            tokens: Resolves a token address to a treasury-bound LedgerToken
            policy: Administrator capability check
        """
        self._tokens = tokens
        self._policy = policy

    async def balance_of(self, token: str, holder: str) -> int:
        return await self._tokens(token).balance_of(holder)

    async def withdraw_token(self, caller: str, token: str, amount: int) -> int:
        """
        Send treasury tokens to the administrator.

        Args:
            caller: Identity of the caller (must be the administrator)
            token: Token address
            amount: Amount to withdraw

        Returns:
            Treasury balance left after the withdrawal

        Raises:
            NotAuthorized: If caller is not the administrator
            InsufficientBalance: If the treasury holds less than amount
        """
        administrator = self._policy.require(caller)
        check_uint256(amount, "amount")

        handle = self._tokens(token)
        held = await handle.balance_of(handle.owner)

        if held < amount:
            raise InsufficientBalance(
                f"Treasury holds {held} of {handle.address}, requested {amount}"
            )

        if not await handle.transfer(administrator, amount):
            raise TransferFailed(f"Withdrawal of {amount} {handle.address} was refused")

        remaining = await handle.balance_of(handle.owner)

        logger.info(
            "Treasury withdrawal",
            token=handle.address,
            amount=amount,
            to=administrator,
            remaining=remaining,
        )
        return remaining

    async def deposit(self, caller: str, token: str, amount: int) -> int:
        """
        Credit the treasury on the bundled token ledger.

        Returns:
            Treasury balance after the deposit

        Raises:
            NotAuthorized: If caller is not the administrator
        """
        self._policy.require(caller)

        handle = self._tokens(token)
        balance = await handle.mint(handle.owner, amount)

        logger.info(
            "Treasury deposit",
            token=handle.address,
            amount=amount,
            balance=balance,
        )
        return balance
