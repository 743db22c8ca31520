"""
CarbonLedger - Carbon Credit Ledger
=====================================
Ledger permissioned per emissione e retirement di crediti CO2 (CCT).

Version: 1.0.0
Author: CarbonLedger Team
License: MIT
"""

__version__ = "1.0.0"
__author__ = "CarbonLedger Team"
__license__ = "MIT"

# Core imports
from carbon_ledger.config import LedgerSettings, get_settings
from carbon_ledger.contracts.offset_manager import OffsetManager
from carbon_ledger.contracts.result import OpResult
from carbon_ledger.domain.clock import BlockHeightClock, SystemClock
from carbon_ledger.domain.state import LedgerState

# Services
from carbon_ledger.services.payment_service import PaymentGateway, InMemoryPaymentGateway

# Storage
from carbon_ledger.storage.db import LedgerDatabase

# Constants
from carbon_ledger.constants import (
    ErrorKind,
    OffsetStatus,
    TOKEN_TICKER,
)

__all__ = [
    # Version
    "__version__",

    # Core
    "OffsetManager",
    "OpResult",
    "LedgerState",
    "LedgerSettings",
    "get_settings",
    "BlockHeightClock",
    "SystemClock",

    # Services
    "PaymentGateway",
    "InMemoryPaymentGateway",

    # Storage
    "LedgerDatabase",

    # Constants
    "ErrorKind",
    "OffsetStatus",
    "TOKEN_TICKER",
]
