"""
CarbonLedger - Ledger State
============================
Contenitore dello stato autoritativo di tutti i componenti.

Ogni operazione pubblica lavora su una copia staged (staged_copy) che
sostituisce lo stato committato solo a operazione riuscita: un errore
in qualunque punto scarta la copia e lascia lo stato invariato.

Le mappe della copia staged sono JournaledDict sopra quelle committate:
le scritture dell'operazione restano nel journal fino a commit().
"""

from __future__ import annotations
import copy
from typing import Iterator, Tuple

from carbon_ledger.constants import DEFAULT_OFFSET_FEE, MAX_SUPPLY
from carbon_ledger.domain.access import AccessControl
from carbon_ledger.domain.aggregates import AggregateTracker
from carbon_ledger.domain.journal import JournaledDict
from carbon_ledger.domain.ledger import AccountLedger
from carbon_ledger.domain.metadata import MetadataStore
from carbon_ledger.domain.models import AccountId
from carbon_ledger.domain.records import OffsetRecordStore


JOURNALED_MAPPINGS: Tuple[Tuple[str, str], ...] = (
    ("ledger", "balances"),
    ("access", "offsetters"),
    ("aggregates", "aggregates"),
    ("records", "records"),
    ("metadata", "versions"),
    ("metadata", "licenses"),
    ("metadata", "categories"),
    ("metadata", "collaborators"),
    ("metadata", "revenue_shares"),
)


class LedgerState:
    """
    Stato completo del ledger.

    I componenti si riferiscono tra loro (records -> ledger/access/aggregates,
    metadata -> records); staged_copy ricollega questi riferimenti alla copia.

    Examples:
        >>> state = LedgerState.genesis(admin="deployer")
        >>> staged = state.staged_copy()
        >>> staged.ledger.mint(10, "wallet_1")
        >>> state.ledger.total_supply
        0
    """

    def __init__(
        self,
        ledger: AccountLedger,
        access: AccessControl,
        aggregates: AggregateTracker,
        records: OffsetRecordStore,
        metadata: MetadataStore,
    ):
        self.ledger = ledger
        self.access = access
        self.aggregates = aggregates
        self.records = records
        self.metadata = metadata

    @classmethod
    def genesis(
        cls,
        admin: AccountId,
        offset_fee: int = DEFAULT_OFFSET_FEE,
        max_supply: int = MAX_SUPPLY,
        register_admin_as_offsetter: bool = True,
    ) -> LedgerState:
        """Stato iniziale: nessun record, supply zero"""
        ledger = AccountLedger(max_supply=max_supply)
        access = AccessControl(
            admin=admin,
            offset_fee=offset_fee,
            register_admin_as_offsetter=register_admin_as_offsetter,
        )
        aggregates = AggregateTracker()
        records = OffsetRecordStore(ledger, access, aggregates)
        metadata = MetadataStore(records)
        return cls(ledger, access, aggregates, records, metadata)

    def staged_copy(self) -> LedgerState:
        """
        Copia su cui applicare un'operazione.

        Gli scalari sono copiati, le mappe sono journal sopra quelle
        committate. Va usata una copia alla volta: commit() di una copia
        modifica le mappe condivise con lo stato di origine.
        """
        ledger = copy.copy(self.ledger)
        access = copy.copy(self.access)
        aggregates = copy.copy(self.aggregates)

        records = copy.copy(self.records)
        records.ledger = ledger
        records.access = access
        records.aggregates = aggregates

        metadata = copy.copy(self.metadata)
        metadata.records = records

        staged = LedgerState(ledger, access, aggregates, records, metadata)
        for component, attribute, mapping in self.mappings():
            setattr(getattr(staged, component), attribute, JournaledDict.over(mapping))
        return staged

    def mappings(self) -> Iterator[Tuple[str, str, dict]]:
        """(componente, attributo, mappa) per ogni mappa dello stato"""
        for component, attribute in JOURNALED_MAPPINGS:
            yield component, attribute, getattr(getattr(self, component), attribute)

    def commit(self) -> None:
        """Applica le scritture staged alle mappe committate"""
        for _component, _attribute, mapping in self.mappings():
            if isinstance(mapping, JournaledDict):
                mapping.commit()

    def check_invariants(self) -> list[str]:
        """Tutte le violazioni di invarianti (lista vuota se consistente)"""
        violations = []
        violations.extend(self.ledger.check_invariants())
        violations.extend(self.records.check_invariants())
        violations.extend(self.aggregates.check_invariants(self.records))
        return violations

    def __repr__(self) -> str:
        return f"LedgerState({self.ledger!r}, {self.access!r}, {self.records!r})"


__all__ = ["LedgerState", "JOURNALED_MAPPINGS"]
