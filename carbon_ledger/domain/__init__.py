"""
CarbonLedger - Domain Package
===============================
Componenti del ledger: balances, access control, offset lifecycle,
aggregati e metadata ausiliari.
"""

from carbon_ledger.domain.models import (
    AccountId,
    OffsetRecord,
    UserAggregate,
    OffsetVersion,
    OffsetLicense,
    OffsetCategory,
    Collaborator,
    RevenueShare,
)
from carbon_ledger.domain.clock import (
    Clock,
    BlockHeightClock,
    SystemClock,
    create_clock,
)
from carbon_ledger.domain.ledger import AccountLedger
from carbon_ledger.domain.access import AccessControl
from carbon_ledger.domain.aggregates import AggregateTracker
from carbon_ledger.domain.records import OffsetRecordStore
from carbon_ledger.domain.metadata import MetadataStore
from carbon_ledger.domain.journal import JournaledDict
from carbon_ledger.domain.state import LedgerState

__all__ = [
    # Models
    "AccountId",
    "OffsetRecord",
    "UserAggregate",
    "OffsetVersion",
    "OffsetLicense",
    "OffsetCategory",
    "Collaborator",
    "RevenueShare",

    # Clock
    "Clock",
    "BlockHeightClock",
    "SystemClock",
    "create_clock",

    # Components
    "AccountLedger",
    "AccessControl",
    "AggregateTracker",
    "OffsetRecordStore",
    "MetadataStore",
    "JournaledDict",
    "LedgerState",
]
