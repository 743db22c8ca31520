"""
CarbonLedger - Storage Package
===============================
Persistenza stato ledger.
"""

from carbon_ledger.storage.db import LedgerDatabase

__all__ = [
    "LedgerDatabase",
]
