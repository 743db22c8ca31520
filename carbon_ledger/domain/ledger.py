"""
CarbonLedger - Account Ledger
==============================
Balances CCT e total supply.

Security Level: CRITICAL
Last Updated: 2026-10-19
Version: 1.0.0

Invariante: total_supply == sum(balances) <= max_supply.

mint/burn/transfer sono transizioni pure sullo stato: vanno invocate
solo su uno stato staged all'interno di una transazione
(vedi OffsetManager), mai direttamente sullo stato committato.
"""

from typing import Dict, Iterator, Tuple

from carbon_ledger.constants import MAX_SUPPLY
from carbon_ledger.domain.models import AccountId
from carbon_ledger.domain.validation import is_uint, require_uint
from carbon_ledger.errors import (
    InvalidAmountError,
    InsufficientBalanceError,
    MaxSupplyExceededError,
)
from carbon_ledger.logging_setup import get_logger


logger = get_logger("ledger")


class AccountLedger:
    """
    Ledger fungibile CCT.

    Attributes:
        balances: AccountId -> balance (>= 0)
        total_supply: Somma di tutti i balance
        max_supply: Cap fisso della supply

    Examples:
        >>> ledger = AccountLedger()
        >>> ledger.mint(500, "wallet_1")
        >>> ledger.balance_of("wallet_1")
        500
    """

    def __init__(self, max_supply: int = MAX_SUPPLY):
        self.balances: Dict[AccountId, int] = {}
        self.total_supply: int = 0
        self.max_supply = max_supply

    def balance_of(self, account: AccountId) -> int:
        return self.balances.get(account, 0)

    def mint(self, amount: int, to: AccountId) -> None:
        """
        Conia CCT verso `to`.

        Raises:
            InvalidAmountError: amount non uint
            MaxSupplyExceededError: total_supply supererebbe max_supply
        """
        require_uint("amount", amount)

        new_supply = self.total_supply + amount
        if new_supply > self.max_supply:
            raise MaxSupplyExceededError(
                f"Mint of {amount} exceeds max supply {self.max_supply}",
                code="MAX_SUPPLY_EXCEEDED",
                details={"amount": amount, "total_supply": self.total_supply},
            )

        self.balances[to] = self.balance_of(to) + amount
        self.total_supply = new_supply

        logger.debug("Minted", extra_data={"amount": amount, "to": str(to)})

    def burn(self, amount: int, from_account: AccountId) -> None:
        """
        Brucia CCT di `from_account`.

        Raises:
            InsufficientBalanceError: balance < amount
        """
        require_uint("amount", amount)

        balance = self.balance_of(from_account)
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient balance to burn: {balance} < {amount}",
                code="INSUFFICIENT_BALANCE",
                details={"account": str(from_account), "balance": balance, "amount": amount},
            )

        self.balances[from_account] = balance - amount
        self.total_supply -= amount

        logger.debug("Burned", extra_data={"amount": amount, "from": str(from_account)})

    def transfer(self, from_account: AccountId, to: AccountId, amount: int) -> None:
        """
        Sposta `amount` CCT da `from_account` a `to`.

        Raises:
            InvalidAmountError: amount <= 0
            InsufficientBalanceError: balance mittente insufficiente
        """
        if not is_uint(amount) or amount == 0:
            raise InvalidAmountError(
                f"Invalid transfer amount: {amount!r}",
                code="INVALID_TRANSFER_AMOUNT",
                details={"amount": amount},
            )

        balance = self.balance_of(from_account)
        if balance < amount:
            raise InsufficientBalanceError(
                f"Insufficient balance: {balance} < {amount}",
                code="INSUFFICIENT_BALANCE",
                details={"account": str(from_account), "balance": balance, "amount": amount},
            )

        self.balances[from_account] = balance - amount
        self.balances[to] = self.balance_of(to) + amount

    def holders(self) -> Iterator[Tuple[AccountId, int]]:
        """Account con balance > 0"""
        return ((account, bal) for account, bal in self.balances.items() if bal > 0)

    def check_invariants(self) -> list[str]:
        """Restituisce le violazioni trovate (lista vuota se consistente)"""
        violations = []

        balance_sum = sum(self.balances.values())
        if balance_sum != self.total_supply:
            violations.append(
                f"total_supply {self.total_supply} != sum(balances) {balance_sum}"
            )

        if self.total_supply > self.max_supply:
            violations.append(
                f"total_supply {self.total_supply} exceeds max_supply {self.max_supply}"
            )

        negative = [str(a) for a, bal in self.balances.items() if bal < 0]
        if negative:
            violations.append(f"negative balances: {negative}")

        return violations

    def __repr__(self) -> str:
        return (
            f"AccountLedger(accounts={len(self.balances)}, "
            f"total_supply={self.total_supply})"
        )


__all__ = ["AccountLedger"]
