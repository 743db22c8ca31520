"""
CarbonLedger - Core Domain Models
==================================
Strutture dati del ledger crediti CO2.

Security Level: CRITICAL
Last Updated: 2026-10-19
Version: 1.0.0

Models:
- OffsetRecord: Credito emesso (owner, amount, pool, payment, stato)
- UserAggregate: Rollup per account (total/active/retired)
- OffsetVersion: Annotazione versione (non modifica amount canonico)
- OffsetLicense: Licenza d'uso concessa a un licensee
- OffsetCategory: Categoria + tag
- Collaborator: Ruolo e permessi di un collaboratore
- RevenueShare: Quota ricavi di un partecipante

Tutte le strutture sono immutabili (frozen): le transizioni producono
nuove istanze con dataclasses.replace.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, Tuple

from carbon_ledger.constants import OffsetStatus


# Identità account: opaca, confrontabile, hashable
AccountId = Hashable


# ============================================================================
# OFFSET RECORD
# ============================================================================

@dataclass(frozen=True)
class OffsetRecord:
    """
    Offset record emesso da un offsetter registrato.

    Attributes:
        offset_id (int): Id sequenziale (>= 1)
        owner (AccountId): Offsetter che ha emesso il credito
        amount (int): CCT coniati
        pool (AccountId): Destinatario del pagamento
        payment (int): amount * fee al momento dell'emissione (immutabile)
        metadata (str): Descrizione (max 512 caratteri)
        created_at (int): Tempo logico di emissione
        status (OffsetStatus): ACTIVE o RETIRED
        verified (bool): Conferma amministrativa o da retirement

    Examples:
        >>> record = OffsetRecord(
        ...     offset_id=1, owner="wallet_1", amount=500, pool="pool",
        ...     payment=50000, metadata="wind farm", created_at=1000
        ... )
        >>> record.is_active()
        True
    """

    offset_id: int
    owner: AccountId
    amount: int
    pool: AccountId
    payment: int
    metadata: str
    created_at: int
    status: OffsetStatus = OffsetStatus.ACTIVE
    verified: bool = False

    def is_active(self) -> bool:
        return self.status == OffsetStatus.ACTIVE

    def is_retired(self) -> bool:
        return self.status == OffsetStatus.RETIRED

    def retired(self) -> OffsetRecord:
        """Copia ritirata (retirement forza verified=True)"""
        return replace(self, status=OffsetStatus.RETIRED, verified=True)

    def with_verified(self) -> OffsetRecord:
        return replace(self, verified=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serializza record in dict"""
        return {
            "offset_id": self.offset_id,
            "owner": self.owner,
            "amount": self.amount,
            "pool": self.pool,
            "payment": self.payment,
            "metadata": self.metadata,
            "created_at": self.created_at,
            "status": self.status.value,
            "verified": self.verified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> OffsetRecord:
        """Deserializza record da dict"""
        return cls(
            offset_id=data["offset_id"],
            owner=data["owner"],
            amount=data["amount"],
            pool=data["pool"],
            payment=data["payment"],
            metadata=data.get("metadata", ""),
            created_at=data["created_at"],
            status=OffsetStatus(data.get("status", OffsetStatus.ACTIVE.value)),
            verified=data.get("verified", False),
        )

    def __repr__(self) -> str:
        return (
            f"OffsetRecord(#{self.offset_id}, owner={self.owner}, "
            f"amount={self.amount}, status={self.status.value}, "
            f"verified={self.verified})"
        )


# ============================================================================
# USER AGGREGATE
# ============================================================================

@dataclass(frozen=True)
class UserAggregate:
    """
    Rollup denormalizzato per account.

    Invariante: total_offset == active_offset + retired_offset.
    Account senza record: tutti i campi a zero.
    """

    total_offset: int = 0
    active_offset: int = 0
    retired_offset: int = 0
    last_offset_time: int = 0

    def with_issued(self, amount: int, now: int) -> UserAggregate:
        return UserAggregate(
            total_offset=self.total_offset + amount,
            active_offset=self.active_offset + amount,
            retired_offset=self.retired_offset,
            last_offset_time=now,
        )

    def with_retired(self, amount: int, now: int) -> UserAggregate:
        return UserAggregate(
            total_offset=self.total_offset,
            active_offset=self.active_offset - amount,
            retired_offset=self.retired_offset + amount,
            last_offset_time=now,
        )

    def is_consistent(self) -> bool:
        return self.total_offset == self.active_offset + self.retired_offset

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_offset": self.total_offset,
            "active_offset": self.active_offset,
            "retired_offset": self.retired_offset,
            "last_offset_time": self.last_offset_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UserAggregate:
        return cls(
            total_offset=data.get("total_offset", 0),
            active_offset=data.get("active_offset", 0),
            retired_offset=data.get("retired_offset", 0),
            last_offset_time=data.get("last_offset_time", 0),
        )


# ============================================================================
# AUXILIARY METADATA
# ============================================================================

@dataclass(frozen=True)
class OffsetVersion:
    """Annotazione versione: non modifica l'amount canonico del record"""

    updated_amount: int
    notes: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated_amount": self.updated_amount,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OffsetLicense:
    """
    Licenza d'uso di un offset.

    La scadenza è interpretata in lettura: nessuna transizione di stato
    avviene quando expiry è superato.
    """

    expiry: int
    terms: str
    active: bool = True

    def is_valid_at(self, now: int) -> bool:
        return self.active and now < self.expiry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expiry": self.expiry,
            "terms": self.terms,
            "active": self.active,
        }


@dataclass(frozen=True)
class OffsetCategory:
    """Categoria (slot singolo, sovrascrivibile) con max 10 tag"""

    category: str
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class Collaborator:
    """Collaboratore di un offset con ruolo e max 5 permessi"""

    role: str
    permissions: Tuple[str, ...] = field(default_factory=tuple)
    added_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "permissions": list(self.permissions),
            "added_at": self.added_at,
        }


@dataclass(frozen=True)
class RevenueShare:
    """Quota ricavi (0-100%) di un partecipante"""

    percentage: int
    total_received: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percentage": self.percentage,
            "total_received": self.total_received,
        }


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "AccountId",
    "OffsetRecord",
    "UserAggregate",
    "OffsetVersion",
    "OffsetLicense",
    "OffsetCategory",
    "Collaborator",
    "RevenueShare",
]
