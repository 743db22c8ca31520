"""
CarbonLedger - Access Control
==============================
Admin, flag di pausa, whitelist offsetter e fee di emissione.
"""

from typing import Dict

from carbon_ledger.constants import DEFAULT_OFFSET_FEE
from carbon_ledger.domain.models import AccountId
from carbon_ledger.domain.validation import require_uint
from carbon_ledger.errors import (
    UnauthorizedError,
    ContractPausedError,
    AlreadyRegisteredError,
)


class AccessControl:
    """
    Stato autorizzativo del ledger.

    La whitelist distingue "mai registrato" (chiave assente) da "revocato"
    (chiave presente con False); entrambi risultano non autorizzati.

    Examples:
        >>> access = AccessControl(admin="deployer")
        >>> access.add_offsetter("deployer", "wallet_1")
        >>> access.is_offsetter("wallet_1")
        True
    """

    def __init__(
        self,
        admin: AccountId,
        offset_fee: int = DEFAULT_OFFSET_FEE,
        register_admin_as_offsetter: bool = True,
    ):
        self.admin: AccountId = admin
        self.paused: bool = False
        self.offsetters: Dict[AccountId, bool] = {}
        self.offset_fee: int = offset_fee

        if register_admin_as_offsetter:
            self.offsetters[admin] = True

    # ========================================================================
    # GUARDS
    # ========================================================================

    def require_admin(self, caller: AccountId) -> None:
        if caller != self.admin:
            raise UnauthorizedError(
                "Caller is not the admin",
                code="NOT_ADMIN",
                details={"caller": str(caller)},
            )

    def require_not_paused(self) -> None:
        if self.paused:
            raise ContractPausedError("Ledger is paused", code="PAUSED")

    # ========================================================================
    # ADMIN OPERATIONS
    # ========================================================================

    def set_admin(self, caller: AccountId, new_admin: AccountId) -> None:
        self.require_admin(caller)
        self.admin = new_admin

    def pause(self, caller: AccountId) -> None:
        self.require_admin(caller)
        self.paused = True

    def unpause(self, caller: AccountId) -> None:
        self.require_admin(caller)
        self.paused = False

    def add_offsetter(self, caller: AccountId, account: AccountId) -> None:
        """
        Registra un offsetter.

        Raises:
            UnauthorizedError: caller non admin
            AlreadyRegisteredError: account già attivo (un revocato può essere riattivato)
        """
        self.require_admin(caller)

        if self.offsetters.get(account, False):
            raise AlreadyRegisteredError(
                f"Offsetter already registered: {account}",
                code="ALREADY_REGISTERED",
                details={"account": str(account)},
            )

        self.offsetters[account] = True

    def remove_offsetter(self, caller: AccountId, account: AccountId) -> None:
        """Revoca (idempotente, nessun errore se assente)"""
        self.require_admin(caller)
        self.offsetters[account] = False

    def set_fee(self, caller: AccountId, new_fee: int) -> None:
        self.require_admin(caller)
        self.offset_fee = require_uint("new_fee", new_fee)

    # ========================================================================
    # READS
    # ========================================================================

    def is_admin(self, account: AccountId) -> bool:
        return account == self.admin

    def is_paused(self) -> bool:
        return self.paused

    def is_offsetter(self, account: AccountId) -> bool:
        return self.offsetters.get(account, False)

    def get_fee(self) -> int:
        return self.offset_fee

    def __repr__(self) -> str:
        active = sum(1 for enabled in self.offsetters.values() if enabled)
        return (
            f"AccessControl(admin={self.admin}, paused={self.paused}, "
            f"offsetters={active}, fee={self.offset_fee})"
        )


__all__ = ["AccessControl"]
