"""
CarbonLedger - Offset Record Store
===================================
Record di offset con id sequenziali e lifecycle ACTIVE -> RETIRED.

Security Level: CRITICAL
Last Updated: 2026-10-19
Version: 1.0.0

Transizioni:
    (none)  --issue-->         ACTIVE   (mint, verified=False)
    ACTIVE  --retire-->        RETIRED  (burn, verified=True, terminale)
    any     --admin_verify-->  stesso stato, verified=True

Le guardie sono verificate in ordine fisso; il primo errore determina
l'ErrorKind restituito. Gli effetti vengono applicati allo stato staged:
il rollback è responsabilità del chiamante (transazione).
"""

from typing import Dict, Iterator, Optional

from carbon_ledger.constants import (
    FIRST_OFFSET_ID,
    MAX_METADATA_LEN,
    MIN_OFFSET_AMOUNT,
)
from carbon_ledger.domain.access import AccessControl
from carbon_ledger.domain.aggregates import AggregateTracker
from carbon_ledger.domain.ledger import AccountLedger
from carbon_ledger.domain.models import AccountId, OffsetRecord
from carbon_ledger.domain.validation import is_uint, require_bounded_string
from carbon_ledger.errors import (
    InvalidAmountError,
    InvalidOffsetterError,
    InvalidPoolError,
    InsufficientBalanceError,
    OffsetAlreadyRetiredError,
    OffsetNotFoundError,
    UnauthorizedError,
    format_offset_error,
)
from carbon_ledger.logging_setup import get_logger


logger = get_logger("records")


class OffsetRecordStore:
    """
    Store dei record di offset.

    Attributes:
        records: offset_id -> OffsetRecord
        offset_counter: Ultimo id assegnato (0 = nessun record)
        total_offsets: Somma amount emessi (non decresce col retirement)
    """

    def __init__(
        self,
        ledger: AccountLedger,
        access: AccessControl,
        aggregates: AggregateTracker,
    ):
        self.ledger = ledger
        self.access = access
        self.aggregates = aggregates

        self.records: Dict[int, OffsetRecord] = {}
        self.offset_counter: int = FIRST_OFFSET_ID - 1
        self.total_offsets: int = 0

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def get(self, offset_id: int) -> Optional[OffsetRecord]:
        return self.records.get(offset_id)

    def require(self, offset_id: int) -> OffsetRecord:
        """
        Risolve un record esistente.

        Raises:
            OffsetNotFoundError: id sconosciuto
        """
        record = self.records.get(offset_id)
        if record is None:
            raise format_offset_error(
                OffsetNotFoundError, offset_id, "record not found", code="OFFSET_NOT_FOUND"
            )
        return record

    @property
    def next_id(self) -> int:
        return self.offset_counter + 1

    def __iter__(self) -> Iterator[OffsetRecord]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def issue(
        self,
        caller: AccountId,
        amount: int,
        pool: AccountId,
        metadata: str,
        now: int,
    ) -> OffsetRecord:
        """
        Emette un nuovo offset ACTIVE e conia i CCT corrispondenti.

        Il pagamento verso il pool NON avviene qui: l'OffsetManager lo
        esegue dopo aver applicato gli effetti allo stato staged.

        Raises:
            ContractPausedError, InvalidAmountError, MetadataTooLongError,
            InvalidOffsetterError, InvalidPoolError
        """
        self.access.require_not_paused()

        if not is_uint(amount) or amount < MIN_OFFSET_AMOUNT:
            raise InvalidAmountError(
                f"Offset amount must be >= {MIN_OFFSET_AMOUNT}, got {amount!r}",
                code="INVALID_OFFSET_AMOUNT",
                details={"amount": amount},
            )

        require_bounded_string("metadata", metadata, MAX_METADATA_LEN)

        if not self.access.is_offsetter(caller):
            raise InvalidOffsetterError(
                f"Caller is not a registered offsetter: {caller}",
                code="INVALID_OFFSETTER",
                details={"caller": str(caller)},
            )

        if pool == caller:
            raise InvalidPoolError(
                "Pool must differ from the offsetter",
                code="INVALID_POOL",
                details={"pool": str(pool)},
            )

        # Fissato all'emissione, mai ricalcolato
        payment = amount * self.access.get_fee()

        self.ledger.mint(amount, caller)

        offset_id = self.next_id
        record = OffsetRecord(
            offset_id=offset_id,
            owner=caller,
            amount=amount,
            pool=pool,
            payment=payment,
            metadata=metadata,
            created_at=now,
        )
        self.records[offset_id] = record
        self.aggregates.record_issued(caller, amount, now)
        self.total_offsets += amount
        self.offset_counter = offset_id

        logger.debug(
            "Offset staged",
            extra_data={"offset_id": offset_id, "amount": amount, "payment": payment},
        )

        return record

    def retire(self, caller: AccountId, offset_id: int, now: int) -> OffsetRecord:
        """
        Ritira un offset: brucia i CCT e porta il record a RETIRED.

        Raises:
            ContractPausedError, OffsetNotFoundError, UnauthorizedError,
            OffsetAlreadyRetiredError, InsufficientBalanceError
        """
        self.access.require_not_paused()

        record = self.require(offset_id)

        if caller != record.owner:
            raise format_offset_error(
                UnauthorizedError, offset_id, "caller is not the owner", code="NOT_OWNER"
            )

        if not record.is_active():
            raise format_offset_error(
                OffsetAlreadyRetiredError, offset_id, "already retired", code="ALREADY_RETIRED"
            )

        balance = self.ledger.balance_of(caller)
        if balance < record.amount:
            raise InsufficientBalanceError(
                f"Offset #{offset_id}: balance {balance} < amount {record.amount}",
                code="INSUFFICIENT_BALANCE",
                details={"offset_id": offset_id, "balance": balance, "amount": record.amount},
            )

        self.ledger.burn(record.amount, caller)

        retired = record.retired()
        self.records[offset_id] = retired
        self.aggregates.record_retired(caller, record.amount, now)

        return retired

    def verify(self, caller: AccountId, offset_id: int) -> OffsetRecord:
        """
        Verifica amministrativa (stato invariato).

        Raises:
            UnauthorizedError, OffsetNotFoundError
        """
        self.access.require_admin(caller)

        verified = self.require(offset_id).with_verified()
        self.records[offset_id] = verified
        return verified

    # ========================================================================
    # READS
    # ========================================================================

    def is_verified_and_active(self, offset_id: int) -> bool:
        record = self.records.get(offset_id)
        return record is not None and record.verified and record.is_active()

    def check_invariants(self) -> list[str]:
        violations = []

        expected_ids = list(range(FIRST_OFFSET_ID, self.offset_counter + 1))
        if sorted(self.records) != expected_ids:
            violations.append(
                f"offset ids are not dense 1..{self.offset_counter}"
            )

        for record in self.records.values():
            if record.is_retired() and not record.verified:
                violations.append(f"retired offset #{record.offset_id} is not verified")
            if record.pool == record.owner:
                violations.append(f"offset #{record.offset_id} has pool == owner")

        return violations

    def __repr__(self) -> str:
        return (
            f"OffsetRecordStore(records={len(self.records)}, "
            f"counter={self.offset_counter}, total_offsets={self.total_offsets})"
        )


__all__ = ["OffsetRecordStore"]
