"""
CarbonLedger - Payment Service
================================
Capability di pagamento esterna usata dall'issuance.

Security Level: HIGH
Last Updated: 2026-10-19
Version: 1.0.0

Il ledger chiama transfer(amount, sender, recipient) una volta per
issue e si fida del risultato sincrono (True = successo).
InMemoryPaymentGateway replica le regole di un transfer nativo
(amount > 0, sender != recipient, balance sufficiente).
"""

from dataclasses import dataclass
from typing import Dict, List, Protocol, runtime_checkable

from carbon_ledger.domain.models import AccountId
from carbon_ledger.logging_setup import get_logger


logger = get_logger("payment_service")


@runtime_checkable
class PaymentGateway(Protocol):
    """Trasferimento di pagamento esterno (escrow/pool)"""

    def transfer(self, amount: int, sender: AccountId, recipient: AccountId) -> bool:
        ...


@dataclass(frozen=True)
class PaymentTransfer:
    """Trasferimento eseguito dal gateway in-memory"""
    amount: int
    sender: AccountId
    recipient: AccountId


class InMemoryPaymentGateway:
    """
    Gateway con balances nativi in memoria.

    Examples:
        >>> gateway = InMemoryPaymentGateway()
        >>> gateway.fund("wallet_1", 100_000)
        >>> gateway.transfer(50_000, "wallet_1", "pool")
        True
        >>> gateway.balance_of("pool")
        50000
    """

    def __init__(self, balances: Dict[AccountId, int] = None):
        self.balances: Dict[AccountId, int] = dict(balances or {})
        self.transfers: List[PaymentTransfer] = []

    def fund(self, account: AccountId, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Invalid funding amount: {amount}")
        self.balances[account] = self.balance_of(account) + amount

    def balance_of(self, account: AccountId) -> int:
        return self.balances.get(account, 0)

    def transfer(self, amount: int, sender: AccountId, recipient: AccountId) -> bool:
        """
        Esegue il trasferimento.

        Returns:
            bool: False se amount <= 0, sender == recipient o fondi insufficienti
        """
        if amount <= 0:
            logger.warning("Payment rejected: non-positive amount", extra_data={"amount": amount})
            return False

        if sender == recipient:
            logger.warning("Payment rejected: sender == recipient", extra_data={"sender": str(sender)})
            return False

        balance = self.balance_of(sender)
        if balance < amount:
            logger.warning(
                "Payment rejected: insufficient funds",
                extra_data={"sender": str(sender), "balance": balance, "amount": amount}
            )
            return False

        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        self.transfers.append(PaymentTransfer(amount, sender, recipient))

        logger.debug(
            "Payment transferred",
            extra_data={"amount": amount, "sender": str(sender), "recipient": str(recipient)}
        )
        return True


__all__ = [
    "PaymentGateway",
    "PaymentTransfer",
    "InMemoryPaymentGateway",
]
