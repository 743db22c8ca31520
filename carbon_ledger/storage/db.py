"""
CarbonLedger - Database Storage Layer
======================================
Persistenza dello stato committato con SQLAlchemy.

Security Level: HIGH
Last Updated: 2026-10-19
Version: 1.0.0

Features:
- Scrittura delle sole righe cambiate, nella transazione dell'operazione
- Stage prima del pagamento esterno, commit solo dopo
- Ricostruzione LedgerState all'avvio
- Verifica invarianti sullo stato caricato
"""

from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from carbon_ledger.config import LedgerSettings
from carbon_ledger.constants import STATE_SCHEMA_VERSION, OffsetStatus
from carbon_ledger.domain.journal import JournaledDict
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
    DatabaseConnectionError,
    DatabaseCorruptionError,
    DatabaseError,
    SchemaVersionError,
)
from carbon_ledger.logging_setup import get_logger
from carbon_ledger.storage.models_orm import (
    ALL_MODELS,
    Base,
    BalanceORM,
    CollaboratorORM,
    LedgerMetaORM,
    OffsetCategoryORM,
    OffsetLicenseORM,
    OffsetRecordORM,
    OffsetterORM,
    OffsetVersionORM,
    RevenueShareORM,
    UserAggregateORM,
)


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("storage")


_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


# ============================================================================
# ROW BUILDERS
# ============================================================================

def _account_key(account: AccountId) -> str:
    """
    Chiave testuale di un account.

    Solo gli account `str` sopravvivono a un riavvio senza cambiare
    identità (5 e "5" diventerebbero lo stesso account).

    Raises:
        DatabaseError: Account non di tipo str
    """
    if not isinstance(account, str):
        raise DatabaseError(
            f"Account ids must be str to be persisted, got {type(account).__name__}",
            code="UNSUPPORTED_ACCOUNT_ID",
            details={"account": repr(account)}
        )
    return account


def _balance_row(account: AccountId, amount: int) -> BalanceORM:
    return BalanceORM(account=_account_key(account), amount=amount)


def _offsetter_row(account: AccountId, enabled: bool) -> OffsetterORM:
    return OffsetterORM(account=_account_key(account), enabled=enabled)


def _aggregate_row(account: AccountId, aggregate: UserAggregate) -> UserAggregateORM:
    return UserAggregateORM(account=_account_key(account), **aggregate.to_dict())


def _record_row(offset_id: int, record: OffsetRecord) -> OffsetRecordORM:
    return OffsetRecordORM(
        offset_id=offset_id,
        owner=_account_key(record.owner),
        amount=record.amount,
        pool=_account_key(record.pool),
        payment=str(record.payment),
        metadata_text=record.metadata,
        created_at=record.created_at,
        status=record.status.value,
        verified=record.verified,
    )


def _version_row(key: Tuple[int, int], entry: OffsetVersion) -> OffsetVersionORM:
    offset_id, version = key
    return OffsetVersionORM(offset_id=offset_id, version=version, **entry.to_dict())


def _license_row(key: Tuple[int, AccountId], entry: OffsetLicense) -> OffsetLicenseORM:
    offset_id, licensee = key
    return OffsetLicenseORM(
        offset_id=offset_id, licensee=_account_key(licensee), **entry.to_dict()
    )


def _category_row(offset_id: int, entry: OffsetCategory) -> OffsetCategoryORM:
    return OffsetCategoryORM(offset_id=offset_id, **entry.to_dict())


def _collaborator_row(key: Tuple[int, AccountId], entry: Collaborator) -> CollaboratorORM:
    offset_id, collaborator = key
    return CollaboratorORM(
        offset_id=offset_id, collaborator=_account_key(collaborator), **entry.to_dict()
    )


def _revenue_share_row(key: Tuple[int, AccountId], entry: RevenueShare) -> RevenueShareORM:
    offset_id, participant = key
    return RevenueShareORM(
        offset_id=offset_id, participant=_account_key(participant), **entry.to_dict()
    )


# (componente, mappa) -> (modello ORM, builder riga)
_ROW_BUILDERS: Dict[Tuple[str, str], Tuple[type, Callable]] = {
    ("ledger", "balances"): (BalanceORM, _balance_row),
    ("access", "offsetters"): (OffsetterORM, _offsetter_row),
    ("aggregates", "aggregates"): (UserAggregateORM, _aggregate_row),
    ("records", "records"): (OffsetRecordORM, _record_row),
    ("metadata", "versions"): (OffsetVersionORM, _version_row),
    ("metadata", "licenses"): (OffsetLicenseORM, _license_row),
    ("metadata", "categories"): (OffsetCategoryORM, _category_row),
    ("metadata", "collaborators"): (CollaboratorORM, _collaborator_row),
    ("metadata", "revenue_shares"): (RevenueShareORM, _revenue_share_row),
}


# ============================================================================
# DATABASE CLASS
# ============================================================================

class LedgerDatabase:
    """
    Database per la persistenza del LedgerState.

    Attributes:
        db_url: URL SQLAlchemy

    Examples:
        >>> db = LedgerDatabase("sqlite:///data/carbonledger.db")
        >>> db.save_state(state)
        >>> restored = db.load_state()
    """

    def __init__(self, db_url: str, echo: bool = False):
        self.db_url = db_url

        try:
            if db_url in _MEMORY_URLS:
                # Una sola connessione condivisa, altrimenti ogni connessione vede un DB vuoto
                self.engine = create_engine(
                    db_url,
                    echo=echo,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                self.engine = create_engine(db_url, echo=echo)

            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Failed to initialize database: {e}",
                code="DB_CONNECTION_FAILED",
                details={"db_url": db_url}
            ) from e

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info("Database initialized", extra_data={"db_url": db_url})

    @classmethod
    def from_settings(cls, config: LedgerSettings) -> "LedgerDatabase":
        return cls(config.database_url(), echo=config.db_echo)

    # ========================================================================
    # SAVE
    # ========================================================================

    def save_state(self, state: LedgerState) -> None:
        """
        Sostituisce lo stato persistito con `state`.

        Cancellazione e scrittura avvengono nella stessa transazione:
        in caso di errore il database resta allo stato precedente.

        Raises:
            DatabaseError: Se il commit fallisce o un account non è persistibile
        """
        with self.open_session() as session:
            self.stage_state(session, state)
            self.commit(session)

    def open_session(self) -> Session:
        """Sessione per stage_state/commit; close() senza commit è un rollback"""
        return self._session_factory()

    def stage_state(
        self,
        session: Session,
        state: LedgerState,
        committed: Optional[LedgerState] = None,
    ) -> None:
        """
        Scrive `state` nella transazione aperta di `session` senza committarla.

        Con `committed` scrive solo le righe cambiate: gli scalari diversi da
        quelli committati e le chiavi presenti nei journal della copia staged.
        Senza `committed` riscrive tutte le tabelle.

        Raises:
            DatabaseError: Scrittura fallita o account non persistibile
        """
        try:
            if committed is None:
                for model in ALL_MODELS:
                    session.execute(delete(model))
                session.add_all(self._state_rows(state))
                written = len(session.new)
            else:
                written = self._stage_changes(session, state, committed)
            session.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to save ledger state: {e}",
                code="STATE_SAVE_FAILED"
            ) from e

        logger.debug(
            "Ledger state staged",
            extra_data={"rows": written, "full": committed is None}
        )

    def commit(self, session: Session) -> None:
        """
        Rende definitive le righe scritte da stage_state.

        Raises:
            DatabaseError: Se il commit fallisce
        """
        try:
            session.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to commit ledger state: {e}",
                code="STATE_COMMIT_FAILED"
            ) from e

    def _stage_changes(
        self,
        session: Session,
        state: LedgerState,
        committed: LedgerState,
    ) -> int:
        written = 0
        previous = self._meta_values(committed)

        for key, value in self._meta_values(state).items():
            if previous.get(key) != value:
                session.merge(LedgerMetaORM(key=key, value=value))
                written += 1

        for component, attribute, mapping in state.mappings():
            if not isinstance(mapping, JournaledDict):
                continue

            model, build_row = _ROW_BUILDERS[(component, attribute)]

            for key, value in mapping.written().items():
                session.merge(build_row(key, value))
                written += 1

            for key in mapping.deleted():
                identity = key if isinstance(key, tuple) else (key,)
                row = session.get(model, identity)
                if row is not None:
                    session.delete(row)
                    written += 1

        return written

    def _meta_values(self, state: LedgerState) -> Dict[str, str]:
        access = state.access
        records = state.records

        meta = {
            "schema_version": STATE_SCHEMA_VERSION,
            "admin": _account_key(access.admin),
            "paused": int(access.paused),
            "offset_fee": access.offset_fee,
            "max_supply": state.ledger.max_supply,
            "total_supply": state.ledger.total_supply,
            "offset_counter": records.offset_counter,
            "total_offsets": records.total_offsets,
        }
        return {key: str(value) for key, value in meta.items()}

    def _state_rows(self, state: LedgerState) -> List[Base]:
        rows: List[Base] = [
            LedgerMetaORM(key=key, value=value)
            for key, value in self._meta_values(state).items()
        ]

        for component, attribute, mapping in state.mappings():
            _model, build_row = _ROW_BUILDERS[(component, attribute)]
            rows.extend(build_row(key, value) for key, value in mapping.items())

        return rows

    # ========================================================================
    # LOAD
    # ========================================================================

    def has_state(self) -> bool:
        try:
            with self._session_factory() as session:
                return session.get(LedgerMetaORM, "schema_version") is not None
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to query ledger state: {e}") from e

    def load_state(self) -> Optional[LedgerState]:
        """
        Ricostruisce il LedgerState persistito.

        Returns:
            LedgerState, o None se il database è vuoto

        Raises:
            SchemaVersionError: Versione schema non supportata
            DatabaseCorruptionError: Stato caricato viola gli invarianti
        """
        try:
            with self._session_factory() as session:
                meta: Dict[str, str] = {
                    row.key: row.value
                    for row in session.scalars(select(LedgerMetaORM))
                }

                if not meta:
                    return None

                version = int(meta.get("schema_version", "0"))
                if version != STATE_SCHEMA_VERSION:
                    raise SchemaVersionError(
                        f"Unsupported state schema version: {version}",
                        code="SCHEMA_VERSION_MISMATCH",
                        details={"found": version, "expected": STATE_SCHEMA_VERSION}
                    )

                state = LedgerState.genesis(
                    admin=meta["admin"],
                    offset_fee=int(meta["offset_fee"]),
                    max_supply=int(meta["max_supply"]),
                    register_admin_as_offsetter=False,
                )
                self._fill_state(session, state, meta)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to load ledger state: {e}",
                code="STATE_LOAD_FAILED"
            ) from e

        violations = state.check_invariants()
        if violations:
            raise DatabaseCorruptionError(
                "Persisted ledger state violates invariants",
                code="STATE_CORRUPTED",
                details={"violations": violations}
            )

        logger.info(
            "Ledger state loaded",
            extra_data={
                "records": len(state.records),
                "total_supply": state.ledger.total_supply,
            }
        )

        return state

    def _fill_state(self, session, state: LedgerState, meta: Dict[str, str]) -> None:
        state.access.paused = meta["paused"] == "1"
        state.ledger.total_supply = int(meta["total_supply"])
        state.records.offset_counter = int(meta["offset_counter"])
        state.records.total_offsets = int(meta["total_offsets"])

        for row in session.scalars(select(BalanceORM)):
            state.ledger.balances[row.account] = row.amount

        for row in session.scalars(select(OffsetterORM)):
            state.access.offsetters[row.account] = row.enabled

        for row in session.scalars(select(OffsetRecordORM)):
            state.records.records[row.offset_id] = OffsetRecord(
                offset_id=row.offset_id,
                owner=row.owner,
                amount=row.amount,
                pool=row.pool,
                payment=int(row.payment),
                metadata=row.metadata_text,
                created_at=row.created_at,
                status=OffsetStatus(row.status),
                verified=row.verified,
            )

        for row in session.scalars(select(UserAggregateORM)):
            state.aggregates.aggregates[row.account] = UserAggregate(
                total_offset=row.total_offset,
                active_offset=row.active_offset,
                retired_offset=row.retired_offset,
                last_offset_time=row.last_offset_time,
            )

        metadata = state.metadata

        for row in session.scalars(select(OffsetVersionORM)):
            metadata.versions[(row.offset_id, row.version)] = OffsetVersion(
                updated_amount=row.updated_amount,
                notes=row.notes,
                timestamp=row.timestamp,
            )

        for row in session.scalars(select(OffsetLicenseORM)):
            metadata.licenses[(row.offset_id, row.licensee)] = OffsetLicense(
                expiry=row.expiry,
                terms=row.terms,
                active=row.active,
            )

        for row in session.scalars(select(OffsetCategoryORM)):
            metadata.categories[row.offset_id] = OffsetCategory(
                category=row.category,
                tags=tuple(row.tags),
            )

        for row in session.scalars(select(CollaboratorORM)):
            metadata.collaborators[(row.offset_id, row.collaborator)] = Collaborator(
                role=row.role,
                permissions=tuple(row.permissions),
                added_at=row.added_at,
            )

        for row in session.scalars(select(RevenueShareORM)):
            metadata.revenue_shares[(row.offset_id, row.participant)] = RevenueShare(
                percentage=row.percentage,
                total_received=row.total_received,
            )

    def close(self) -> None:
        """Chiude il pool di connessioni"""
        self.engine.dispose()


__all__ = ["LedgerDatabase"]
