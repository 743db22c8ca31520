"""
CarbonLedger - Core Constants
================================
Costanti immutabili del ledger crediti CO2.

Security Level: CRITICAL
Last Updated: 2026-10-19
Version: 1.0.0

IMPORTANTE: i codici errore sono parte del contratto pubblico.
Non rinumerare: client esistenti confrontano i valori numerici.
"""

from enum import IntEnum, Enum
from typing import Final


# ============================================================================
# IDENTIFICAZIONE TOKEN
# ============================================================================

TOKEN_NAME: Final[str] = "Carbon Credit Token"
TOKEN_TICKER: Final[str] = "CCT"

# Versione schema stato persistito
STATE_SCHEMA_VERSION: Final[int] = 1


# ============================================================================
# SUPPLY & FEE
# ============================================================================

# Supply massima CCT (1 CCT = 1 unità di offset)
MAX_SUPPLY: Final[int] = 1_000_000_000_000_000

# Amount minimo per issuance
MIN_OFFSET_AMOUNT: Final[int] = 1

# Fee per unità (pagamento = amount * fee)
DEFAULT_OFFSET_FEE: Final[int] = 100

# Primo id assegnato
FIRST_OFFSET_ID: Final[int] = 1

# Percentuale massima revenue share
MAX_REVENUE_PERCENTAGE: Final[int] = 100


# ============================================================================
# LIMITI STRINGHE E LISTE
# ============================================================================

MAX_METADATA_LEN: Final[int] = 512
MAX_NOTES_LEN: Final[int] = 256
MAX_TERMS_LEN: Final[int] = 256
MAX_CATEGORY_LEN: Final[int] = 64
MAX_TAG_LEN: Final[int] = 32
MAX_TAGS: Final[int] = 10
MAX_ROLE_LEN: Final[int] = 64
MAX_PERMISSION_LEN: Final[int] = 32
MAX_PERMISSIONS: Final[int] = 5


# ============================================================================
# CLOCK
# ============================================================================

# Block height iniziale per clock logico
DEFAULT_GENESIS_HEIGHT: Final[int] = 1000

CLOCK_MODES: Final[tuple] = ("block", "system")


# ============================================================================
# STATI OFFSET
# ============================================================================

class OffsetStatus(Enum):
    """
    Stato di un offset record.

    Stati:
        ACTIVE: Credito emesso, ancora utilizzabile
        RETIRED: Credito bruciato (terminale, nessun ritorno ad ACTIVE)
    """
    ACTIVE = "active"
    RETIRED = "retired"


# ============================================================================
# ERROR KINDS
# ============================================================================

class ErrorKind(IntEnum):
    """
    Tipi di errore restituiti dalle operazioni pubbliche.

    I valori 100-110 sono i codici storici usati dai client esistenti.
    NOT_FOUND, REENTRANT_CALL e STORAGE_FAILURE sono stati aggiunti dopo.
    """
    UNAUTHORIZED = 100
    PAUSED = 101
    INVALID_AMOUNT = 102
    INVALID_RECIPIENT = 103
    INVALID_OFFSETTER = 104
    ALREADY_REGISTERED = 105
    METADATA_TOO_LONG = 106
    INSUFFICIENT_PAYMENT = 107
    INVALID_POOL = 108
    ALREADY_RETIRED = 109
    INVALID_STATUS = 110
    NOT_FOUND = 111
    REENTRANT_CALL = 112
    STORAGE_FAILURE = 113


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "TOKEN_NAME",
    "TOKEN_TICKER",
    "STATE_SCHEMA_VERSION",
    "MAX_SUPPLY",
    "MIN_OFFSET_AMOUNT",
    "DEFAULT_OFFSET_FEE",
    "FIRST_OFFSET_ID",
    "MAX_REVENUE_PERCENTAGE",
    "MAX_METADATA_LEN",
    "MAX_NOTES_LEN",
    "MAX_TERMS_LEN",
    "MAX_CATEGORY_LEN",
    "MAX_TAG_LEN",
    "MAX_TAGS",
    "MAX_ROLE_LEN",
    "MAX_PERMISSION_LEN",
    "MAX_PERMISSIONS",
    "DEFAULT_GENESIS_HEIGHT",
    "CLOCK_MODES",
    "OffsetStatus",
    "ErrorKind",
]
