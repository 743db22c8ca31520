"""
CarbonLedger - Offset Manager
==============================
Superficie pubblica del ledger crediti CO2.

Security Level: CRITICAL
Last Updated: 2026-10-19
Version: 1.0.0

Ogni operazione pubblica:
1. acquisisce il lock globale (esecuzione seriale)
2. rifiuta chiamate rientranti durante un pagamento esterno
3. applica le guardie e gli effetti su una copia staged dello stato
4. scrive le righe cambiate nella transazione database (se configurato)
5. (issue) esegue il pagamento verso il pool per ultimo
6. committa la transazione e sostituisce la copia allo stato committato

Qualunque errore prima del punto 6 scarta la copia e la transazione:
nessuna mutazione parziale è mai osservabile. Le letture non falliscono mai.
"""

import threading
from typing import Callable, Iterable, Optional, TypeVar

from carbon_ledger.config import LedgerSettings, get_settings
from carbon_ledger.constants import ErrorKind
from carbon_ledger.contracts.result import OpResult
from carbon_ledger.domain.clock import Clock, create_clock
from carbon_ledger.domain.models import (
    AccountId,
    Collaborator,
    OffsetCategory,
    OffsetLicense,
    OffsetRecord,
    OffsetVersion,
    RevenueShare,
    UserAggregate,
)
from carbon_ledger.domain.state import LedgerState
from carbon_ledger.errors import (
    DatabaseError,
    InsufficientPaymentError,
    LedgerOperationError,
    ReentrantCallError,
    StateStorageError,
)
from carbon_ledger.logging_setup import AuditLogger, PerformanceLogger, get_logger
from carbon_ledger.services.payment_service import PaymentGateway
from carbon_ledger.storage.db import LedgerDatabase


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("offset_manager")

T = TypeVar("T")


# ============================================================================
# OFFSET MANAGER
# ============================================================================

class OffsetManager:
    """
    Ledger permissioned per crediti CO2 (CCT).

    Attributes:
        config: Configurazione ledger
        payments: Gateway di pagamento esterno
        clock: Sorgente tempo logico
        database: Persistenza (opzionale)

    Examples:
        >>> gateway = InMemoryPaymentGateway({"wallet_1": 1_000_000})
        >>> manager = OffsetManager(gateway, config)
        >>> manager.add_offsetter("deployer", "wallet_1").ok
        True
        >>> manager.issue("wallet_1", 500, "pool", "wind farm").value
        1
        >>> manager.get_balance("wallet_1")
        500
    """

    def __init__(
        self,
        payment_gateway: PaymentGateway,
        config: Optional[LedgerSettings] = None,
        clock: Optional[Clock] = None,
        database: Optional[LedgerDatabase] = None,
    ):
        self.config = config or get_settings()
        self.payments = payment_gateway
        self.clock = clock or create_clock(self.config.clock_mode, self.config.genesis_height)

        if database is None and self.config.persist_state:
            database = LedgerDatabase.from_settings(self.config)
        self.database = database

        self.audit: Optional[AuditLogger] = (
            AuditLogger(self.config.log_dir) if self.config.audit_enabled else None
        )

        self._lock = threading.RLock()
        self._in_external_call = False
        self._resync_required = False
        self._state = self._load_or_genesis()

    def _load_or_genesis(self) -> LedgerState:
        if self.database is not None:
            state = self.database.load_state()
            if state is not None:
                return state

        state = LedgerState.genesis(
            admin=self.config.admin,
            offset_fee=self.config.offset_fee,
            max_supply=self.config.max_supply,
            register_admin_as_offsetter=self.config.register_admin_as_offsetter,
        )

        if self.database is not None:
            self.database.save_state(state)

        logger.info(
            "Ledger genesis",
            extra_data={"admin": str(self.config.admin), "offset_fee": self.config.offset_fee}
        )
        return state

    # ========================================================================
    # TRANSACTION BOUNDARY
    # ========================================================================

    def _run(
        self,
        operation: str,
        caller: AccountId,
        body: Callable[[LedgerState, int], T],
        on_commit: Optional[Callable[[T], None]] = None,
        interaction: Optional[Callable[[LedgerState, T], None]] = None,
    ) -> OpResult[T]:
        """
        Esegue `body` su uno stato staged e lo committa solo se riesce.

        Args:
            operation: Nome operazione (logging)
            caller: Account chiamante
            body: (staged_state, now) -> valore di successo
            on_commit: Callback dopo il commit (audit)
            interaction: Chiamata esterna eseguita dopo lo stage su database
                e prima del commit (pagamento)
        """
        with self._lock:
            if self._in_external_call:
                return self._failure(operation, caller, ReentrantCallError(
                    f"{operation} rejected during an external payment call",
                    code="REENTRANT_CALL",
                ))

            staged = self._state.staged_copy()

            try:
                value = body(staged, self.clock.now())
                self._persist(staged, value, interaction)
            except LedgerOperationError as exc:
                return self._failure(operation, caller, exc)

            staged.commit()
            self._state = staged

            logger.info(
                f"{operation} committed",
                extra_data={"operation": operation, "caller": str(caller)}
            )

            if on_commit is not None:
                on_commit(value)

            return OpResult.success(value)

    def _persist(
        self,
        staged: LedgerState,
        value: T,
        interaction: Optional[Callable[[LedgerState, T], None]],
    ) -> None:
        """
        Scrive le righe staged, esegue l'interazione esterna, poi committa.

        Un errore prima del commit chiude la sessione senza commit
        (rollback). Un commit fallito dopo un pagamento riuscito non
        annulla l'operazione: lo stato resta in memoria e il prossimo
        stage riscrive tutte le tabelle.

        Raises:
            StateStorageError: Stage su database fallito
            InsufficientPaymentError: Pagamento fallito
        """
        if self.database is None:
            if interaction is not None:
                interaction(staged, value)
            return

        with self.database.open_session() as session:
            committed = None if self._resync_required else self._state
            try:
                with PerformanceLogger(logger, "stage_state", threshold_ms=250):
                    self.database.stage_state(session, staged, committed)
            except DatabaseError as exc:
                raise StateStorageError(
                    f"Ledger state could not be saved: {exc.message}",
                    code=exc.code or "STATE_SAVE_FAILED",
                    details=exc.details,
                ) from exc

            if interaction is not None:
                interaction(staged, value)

            try:
                self.database.commit(session)
            except DatabaseError as exc:
                self._resync_required = True
                logger.critical(
                    "Ledger state commit failed after staging, full rewrite scheduled",
                    extra_data={"code": exc.code, "message": exc.message}
                )
            else:
                self._resync_required = False

    def _failure(
        self,
        operation: str,
        caller: AccountId,
        exc: LedgerOperationError,
    ) -> OpResult:
        kind = exc.kind
        if kind == ErrorKind.NOT_FOUND and self.config.legacy_not_found_code:
            kind = ErrorKind.INVALID_AMOUNT

        logger.info(
            f"{operation} rejected: {kind.name}",
            extra_data={
                "operation": operation,
                "caller": str(caller),
                "error": kind.name,
                "code": exc.code,
                "message": exc.message,
            }
        )

        return OpResult.failure(kind, exc.message, exc.details)

    def _pay(self, amount: int, sender: AccountId, recipient: AccountId) -> None:
        """
        Pagamento esterno verso il pool.

        Durante la chiamata ogni operazione mutante è rifiutata
        (REENTRANT_CALL); le letture vedono lo stato committato.

        Raises:
            InsufficientPaymentError: transfer fallito o eccezione del gateway
        """
        self._in_external_call = True
        try:
            ok = self.payments.transfer(amount, sender, recipient)
        except Exception as exc:
            raise InsufficientPaymentError(
                f"Payment gateway error: {exc}",
                code="PAYMENT_GATEWAY_ERROR",
                details={"amount": amount, "pool": str(recipient)},
            ) from exc
        finally:
            self._in_external_call = False

        if not ok:
            raise InsufficientPaymentError(
                f"Payment of {amount} to pool failed",
                code="INSUFFICIENT_PAYMENT",
                details={"amount": amount, "pool": str(recipient)},
            )

    def _audit_admin(self, action: str, caller: AccountId, **details) -> Callable[[object], None]:
        def write(_value):
            if self.audit is not None:
                self.audit.log_admin_action(action, caller, **details)
        return write

    # ========================================================================
    # ADMIN OPERATIONS
    # ========================================================================

    def set_admin(self, caller: AccountId, new_admin: AccountId) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.set_admin(caller, new_admin)
            return True
        return self._run("set_admin", caller, body,
                         self._audit_admin("set_admin", caller, new_admin=new_admin))

    def pause(self, caller: AccountId) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.pause(caller)
            return True
        return self._run("pause", caller, body, self._audit_admin("pause", caller))

    def unpause(self, caller: AccountId) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.unpause(caller)
            return True
        return self._run("unpause", caller, body, self._audit_admin("unpause", caller))

    def add_offsetter(self, caller: AccountId, account: AccountId) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.add_offsetter(caller, account)
            return True
        return self._run("add_offsetter", caller, body,
                         self._audit_admin("add_offsetter", caller, account=account))

    def remove_offsetter(self, caller: AccountId, account: AccountId) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.remove_offsetter(caller, account)
            return True
        return self._run("remove_offsetter", caller, body,
                         self._audit_admin("remove_offsetter", caller, account=account))

    def set_fee(self, caller: AccountId, new_fee: int) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.access.set_fee(caller, new_fee)
            return True
        return self._run("set_fee", caller, body,
                         self._audit_admin("set_fee", caller, new_fee=new_fee))

    # ========================================================================
    # OFFSET LIFECYCLE
    # ========================================================================

    def issue(
        self,
        caller: AccountId,
        amount: int,
        pool: AccountId,
        metadata: str,
    ) -> OpResult[int]:
        """
        Emette un offset: conia `amount` CCT al caller contro un pagamento
        di amount * fee verso `pool`.

        Returns:
            OpResult[int]: id del nuovo record
        """
        def body(state: LedgerState, now: int) -> int:
            return state.records.issue(caller, amount, pool, metadata, now).offset_id

        def pay(state: LedgerState, offset_id: int) -> None:
            # Ultimo passo prima del commit: effetti staged e righe già scritte
            self._pay(state.records.get(offset_id).payment, caller, pool)

        def on_commit(offset_id: int) -> None:
            record = self._state.records.get(offset_id)
            if self.audit is not None:
                self.audit.log_offset_issued(
                    offset_id, record.owner, record.amount, record.pool, record.payment
                )

        return self._run("issue", caller, body, on_commit, interaction=pay)

    def retire(self, caller: AccountId, offset_id: int) -> OpResult[bool]:
        """Ritira un offset attivo dell'owner, bruciandone i CCT"""
        def body(state: LedgerState, now: int) -> bool:
            state.records.retire(caller, offset_id, now)
            return True

        def on_commit(_value: bool) -> None:
            record = self._state.records.get(offset_id)
            if self.audit is not None:
                self.audit.log_offset_retired(offset_id, record.owner, record.amount)

        return self._run("retire", caller, body, on_commit)

    def admin_verify(self, caller: AccountId, offset_id: int) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.records.verify(caller, offset_id)
            return True
        return self._run("admin_verify", caller, body,
                         self._audit_admin("admin_verify", caller, offset_id=offset_id))

    # ========================================================================
    # AUXILIARY METADATA
    # ========================================================================

    def update_version(
        self,
        caller: AccountId,
        offset_id: int,
        version: int,
        new_amount: int,
        notes: str,
    ) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.metadata.update_version(caller, offset_id, version, new_amount, notes, now)
            return True
        return self._run("update_version", caller, body)

    def grant_license(
        self,
        caller: AccountId,
        offset_id: int,
        licensee: AccountId,
        duration: int,
        terms: str,
    ) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.metadata.grant_license(caller, offset_id, licensee, duration, terms, now)
            return True
        return self._run("grant_license", caller, body)

    def set_category(
        self,
        caller: AccountId,
        offset_id: int,
        category: str,
        tags: Iterable[str],
    ) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.metadata.set_category(caller, offset_id, category, tags)
            return True
        return self._run("set_category", caller, body)

    def add_collaborator(
        self,
        caller: AccountId,
        offset_id: int,
        collaborator: AccountId,
        role: str,
        permissions: Iterable[str],
    ) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.metadata.add_collaborator(caller, offset_id, collaborator, role, permissions, now)
            return True
        return self._run("add_collaborator", caller, body)

    def set_revenue_share(
        self,
        caller: AccountId,
        offset_id: int,
        participant: AccountId,
        percentage: int,
    ) -> OpResult[bool]:
        def body(state: LedgerState, now: int) -> bool:
            state.metadata.set_revenue_share(caller, offset_id, participant, percentage)
            return True
        return self._run("set_revenue_share", caller, body)

    # ========================================================================
    # TOKEN TRANSFER
    # ========================================================================

    def transfer_credits(
        self,
        caller: AccountId,
        amount: int,
        recipient: AccountId,
    ) -> OpResult[bool]:
        """Trasferisce CCT dal caller a `recipient` (indipendente dai record)"""
        def body(state: LedgerState, now: int) -> bool:
            state.access.require_not_paused()
            state.ledger.transfer(caller, recipient, amount)
            return True

        def on_commit(_value: bool) -> None:
            if self.audit is not None:
                self.audit.log_transfer(caller, recipient, amount)

        return self._run("transfer_credits", caller, body, on_commit)

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def state(self) -> LedgerState:
        """Stato committato (sola lettura)"""
        return self._state

    def get_admin(self) -> AccountId:
        return self._state.access.admin

    def is_paused(self) -> bool:
        return self._state.access.is_paused()

    def get_fee(self) -> int:
        return self._state.access.get_fee()

    def is_offsetter(self, account: AccountId) -> bool:
        return self._state.access.is_offsetter(account)

    def get_balance(self, account: AccountId) -> int:
        return self._state.ledger.balance_of(account)

    def get_total_supply(self) -> int:
        return self._state.ledger.total_supply

    def get_total_offsets(self) -> int:
        return self._state.records.total_offsets

    def get_offset_counter(self) -> int:
        return self._state.records.offset_counter

    def get_user_aggregate(self, account: AccountId) -> UserAggregate:
        return self._state.aggregates.get(account)

    def get_record(self, offset_id: int) -> Optional[OffsetRecord]:
        return self._state.records.get(offset_id)

    def is_verified_and_active(self, offset_id: int) -> bool:
        return self._state.records.is_verified_and_active(offset_id)

    def get_version(self, offset_id: int, version: int) -> Optional[OffsetVersion]:
        return self._state.metadata.get_version(offset_id, version)

    def get_license(self, offset_id: int, licensee: AccountId) -> Optional[OffsetLicense]:
        return self._state.metadata.get_license(offset_id, licensee)

    def is_license_valid(self, offset_id: int, licensee: AccountId) -> bool:
        """Licenza attiva e non scaduta al tempo corrente"""
        entry = self._state.metadata.get_license(offset_id, licensee)
        return entry is not None and entry.is_valid_at(self.clock.now())

    def get_category(self, offset_id: int) -> Optional[OffsetCategory]:
        return self._state.metadata.get_category(offset_id)

    def get_collaborator(self, offset_id: int, collaborator: AccountId) -> Optional[Collaborator]:
        return self._state.metadata.get_collaborator(offset_id, collaborator)

    def get_revenue_share(self, offset_id: int, participant: AccountId) -> Optional[RevenueShare]:
        return self._state.metadata.get_revenue_share(offset_id, participant)

    def check_invariants(self) -> list[str]:
        return self._state.check_invariants()

    def close(self) -> None:
        if self.database is not None:
            if self._resync_required:
                self.database.save_state(self._state)
            self.database.close()

    def __repr__(self) -> str:
        return f"OffsetManager({self._state!r})"


# ============================================================================
# EXPORT
# ============================================================================

__all__ = ["OffsetManager"]
