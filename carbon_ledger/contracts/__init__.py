"""
CarbonLedger - Contracts Package
==================================
Superficie pubblica del ledger e risultati delle operazioni.
"""

from carbon_ledger.contracts.result import OpResult
from carbon_ledger.contracts.offset_manager import OffsetManager

__all__ = [
    "OpResult",
    "OffsetManager",
]
