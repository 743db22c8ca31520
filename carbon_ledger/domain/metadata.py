"""
CarbonLedger - Auxiliary Metadata Stores
=========================================
Annotazioni per offset: versioni, licenze, categorie, collaboratori,
revenue share.

Tutte le scritture richiedono che il record esista (NOT_FOUND) e che il
caller ne sia l'owner (UNAUTHORIZED); nessuna tocca ledger o aggregati.
Le entry vengono create o sovrascritte, mai cancellate.
"""

from typing import Dict, Iterable, Optional, Tuple

from carbon_ledger.constants import (
    MAX_CATEGORY_LEN,
    MAX_NOTES_LEN,
    MAX_PERMISSION_LEN,
    MAX_PERMISSIONS,
    MAX_REVENUE_PERCENTAGE,
    MAX_ROLE_LEN,
    MAX_TAG_LEN,
    MAX_TAGS,
    MAX_TERMS_LEN,
)
from carbon_ledger.domain.models import (
    AccountId,
    Collaborator,
    OffsetCategory,
    OffsetLicense,
    OffsetRecord,
    OffsetVersion,
    RevenueShare,
)
from carbon_ledger.domain.records import OffsetRecordStore
from carbon_ledger.domain.validation import (
    require_bounded_list,
    require_bounded_string,
    require_uint,
)
from carbon_ledger.errors import (
    InvalidAmountError,
    InvalidStatusError,
    UnauthorizedError,
    format_offset_error,
)


class MetadataStore:
    """
    Store annotazioni per offset.

    Chiavi:
        versions:       (offset_id, version)
        licenses:       (offset_id, licensee)
        categories:     offset_id
        collaborators:  (offset_id, collaborator)
        revenue_shares: (offset_id, participant)
    """

    def __init__(self, records: OffsetRecordStore):
        self.records = records

        self.versions: Dict[Tuple[int, int], OffsetVersion] = {}
        self.licenses: Dict[Tuple[int, AccountId], OffsetLicense] = {}
        self.categories: Dict[int, OffsetCategory] = {}
        self.collaborators: Dict[Tuple[int, AccountId], Collaborator] = {}
        self.revenue_shares: Dict[Tuple[int, AccountId], RevenueShare] = {}

    def _require_owned(self, caller: AccountId, offset_id: int) -> OffsetRecord:
        record = self.records.require(offset_id)
        if caller != record.owner:
            raise format_offset_error(
                UnauthorizedError, offset_id, "caller is not the owner", code="NOT_OWNER"
            )
        return record

    # ========================================================================
    # WRITES
    # ========================================================================

    def update_version(
        self,
        caller: AccountId,
        offset_id: int,
        version: int,
        new_amount: int,
        notes: str,
        now: int,
    ) -> OffsetVersion:
        """
        Scrive lo slot (offset_id, version).

        Le versioni sono congelate dopo il retirement (INVALID_STATUS).
        """
        record = self._require_owned(caller, offset_id)

        if not record.is_active():
            raise format_offset_error(
                InvalidStatusError, offset_id, "versions are frozen once retired",
                code="INVALID_STATUS",
            )

        require_uint("version", version)
        require_uint("new_amount", new_amount)
        require_bounded_string("notes", notes, MAX_NOTES_LEN)

        entry = OffsetVersion(updated_amount=new_amount, notes=notes, timestamp=now)
        self.versions[(offset_id, version)] = entry
        return entry

    def grant_license(
        self,
        caller: AccountId,
        offset_id: int,
        licensee: AccountId,
        duration: int,
        terms: str,
        now: int,
    ) -> OffsetLicense:
        """Concede licenza con expiry = now + duration (nessun vincolo di stato)"""
        self._require_owned(caller, offset_id)

        require_uint("duration", duration)
        require_bounded_string("terms", terms, MAX_TERMS_LEN)

        entry = OffsetLicense(expiry=now + duration, terms=terms, active=True)
        self.licenses[(offset_id, licensee)] = entry
        return entry

    def set_category(
        self,
        caller: AccountId,
        offset_id: int,
        category: str,
        tags: Iterable[str],
    ) -> OffsetCategory:
        self._require_owned(caller, offset_id)

        require_bounded_string("category", category, MAX_CATEGORY_LEN)
        tag_tuple = require_bounded_list("tags", tags, MAX_TAGS, MAX_TAG_LEN)

        entry = OffsetCategory(category=category, tags=tag_tuple)
        self.categories[offset_id] = entry
        return entry

    def add_collaborator(
        self,
        caller: AccountId,
        offset_id: int,
        collaborator: AccountId,
        role: str,
        permissions: Iterable[str],
        now: int,
    ) -> Collaborator:
        self._require_owned(caller, offset_id)

        require_bounded_string("role", role, MAX_ROLE_LEN)
        perm_tuple = require_bounded_list(
            "permissions", permissions, MAX_PERMISSIONS, MAX_PERMISSION_LEN
        )

        entry = Collaborator(role=role, permissions=perm_tuple, added_at=now)
        self.collaborators[(offset_id, collaborator)] = entry
        return entry

    def set_revenue_share(
        self,
        caller: AccountId,
        offset_id: int,
        participant: AccountId,
        percentage: int,
    ) -> RevenueShare:
        """Sovrascrive la quota; total_received riparte da 0"""
        self._require_owned(caller, offset_id)

        require_uint("percentage", percentage)
        if percentage > MAX_REVENUE_PERCENTAGE:
            raise InvalidAmountError(
                f"Percentage must be <= {MAX_REVENUE_PERCENTAGE}, got {percentage}",
                code="INVALID_PERCENTAGE",
                details={"percentage": percentage},
            )

        entry = RevenueShare(percentage=percentage, total_received=0)
        self.revenue_shares[(offset_id, participant)] = entry
        return entry

    # ========================================================================
    # READS
    # ========================================================================

    def get_version(self, offset_id: int, version: int) -> Optional[OffsetVersion]:
        return self.versions.get((offset_id, version))

    def get_license(self, offset_id: int, licensee: AccountId) -> Optional[OffsetLicense]:
        return self.licenses.get((offset_id, licensee))

    def get_category(self, offset_id: int) -> Optional[OffsetCategory]:
        return self.categories.get(offset_id)

    def get_collaborator(self, offset_id: int, collaborator: AccountId) -> Optional[Collaborator]:
        return self.collaborators.get((offset_id, collaborator))

    def get_revenue_share(self, offset_id: int, participant: AccountId) -> Optional[RevenueShare]:
        return self.revenue_shares.get((offset_id, participant))


__all__ = ["MetadataStore"]
