"""
CarbonLedger - Custom Exceptions
=================================
Gerarchia eccezioni per ledger e lifecycle offset.

Ogni errore di dominio porta un ErrorKind: l'OffsetManager lo usa per
costruire il risultato discriminato delle operazioni pubbliche.

Security Level: HIGH
Last Updated: 2026-10-19
Version: 1.0.0
"""

from typing import Optional, Any, Dict, Type

from carbon_ledger.constants import ErrorKind


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class CarbonLedgerException(Exception):
    """
    Eccezione base per tutte le eccezioni CarbonLedger.

    Attributes:
        message (str): Messaggio errore
        code (str): Codice errore (es. "OFFSET_NOT_FOUND")
        details (dict): Dettagli aggiuntivi
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializza eccezione per API/logging"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | Details: {self.details}"
        return f"[{self.code}] {self.message}"


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(CarbonLedgerException):
    """Errore configurazione sistema"""
    pass


class InvalidConfigError(ConfigError):
    """Configurazione invalida"""
    pass


# ============================================================================
# LEDGER OPERATION ERRORS
# ============================================================================

class LedgerOperationError(CarbonLedgerException):
    """
    Errore di un'operazione pubblica.

    Sollevato dai componenti di dominio, intercettato dall'OffsetManager
    che scarta lo stato staged e restituisce un OpResult di fallimento.

    Attributes:
        kind (ErrorKind): Tipo errore esposto ai chiamanti
    """

    kind: ErrorKind = ErrorKind.INVALID_AMOUNT

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["kind"] = self.kind.name
        data["error_code"] = int(self.kind)
        return data


class UnauthorizedError(LedgerOperationError):
    """Caller non autorizzato"""
    kind = ErrorKind.UNAUTHORIZED


class ContractPausedError(LedgerOperationError):
    """Sistema in pausa"""
    kind = ErrorKind.PAUSED


class InvalidAmountError(LedgerOperationError):
    """Amount invalido"""
    kind = ErrorKind.INVALID_AMOUNT


class InsufficientBalanceError(InvalidAmountError):
    """Balance CCT insufficiente"""
    pass


class MaxSupplyExceededError(InvalidAmountError):
    """Supply massima superata"""
    pass


class InvalidRecipientError(LedgerOperationError):
    """Destinatario invalido"""
    kind = ErrorKind.INVALID_RECIPIENT


class InvalidOffsetterError(LedgerOperationError):
    """Caller non registrato come offsetter"""
    kind = ErrorKind.INVALID_OFFSETTER


class AlreadyRegisteredError(LedgerOperationError):
    """Offsetter già registrato"""
    kind = ErrorKind.ALREADY_REGISTERED


class MetadataTooLongError(LedgerOperationError):
    """Stringa o lista oltre il limite"""
    kind = ErrorKind.METADATA_TOO_LONG


class InsufficientPaymentError(LedgerOperationError):
    """Pagamento verso il pool fallito"""
    kind = ErrorKind.INSUFFICIENT_PAYMENT


class InvalidPoolError(LedgerOperationError):
    """Pool coincide con il caller"""
    kind = ErrorKind.INVALID_POOL


class OffsetAlreadyRetiredError(LedgerOperationError):
    """Offset già ritirato"""
    kind = ErrorKind.ALREADY_RETIRED


class InvalidStatusError(LedgerOperationError):
    """Stato offset non compatibile con l'operazione"""
    kind = ErrorKind.INVALID_STATUS


class OffsetNotFoundError(LedgerOperationError):
    """Offset record inesistente"""
    kind = ErrorKind.NOT_FOUND


class ReentrantCallError(LedgerOperationError):
    """Operazione mutante invocata durante una chiamata esterna"""
    kind = ErrorKind.REENTRANT_CALL


class StateStorageError(LedgerOperationError):
    """Lo stato staged non può essere scritto nel database"""
    kind = ErrorKind.STORAGE_FAILURE


# Classe canonica per ErrorKind (usata da OpResult.unwrap)
ERROR_CLASSES: Dict[ErrorKind, Type[LedgerOperationError]] = {
    ErrorKind.UNAUTHORIZED: UnauthorizedError,
    ErrorKind.PAUSED: ContractPausedError,
    ErrorKind.INVALID_AMOUNT: InvalidAmountError,
    ErrorKind.INVALID_RECIPIENT: InvalidRecipientError,
    ErrorKind.INVALID_OFFSETTER: InvalidOffsetterError,
    ErrorKind.ALREADY_REGISTERED: AlreadyRegisteredError,
    ErrorKind.METADATA_TOO_LONG: MetadataTooLongError,
    ErrorKind.INSUFFICIENT_PAYMENT: InsufficientPaymentError,
    ErrorKind.INVALID_POOL: InvalidPoolError,
    ErrorKind.ALREADY_RETIRED: OffsetAlreadyRetiredError,
    ErrorKind.INVALID_STATUS: InvalidStatusError,
    ErrorKind.NOT_FOUND: OffsetNotFoundError,
    ErrorKind.REENTRANT_CALL: ReentrantCallError,
    ErrorKind.STORAGE_FAILURE: StateStorageError,
}


# ============================================================================
# STORAGE ERRORS
# ============================================================================

class StorageError(CarbonLedgerException):
    """Errore storage/database"""
    pass


class DatabaseError(StorageError):
    """Errore database generico"""
    pass


class DatabaseConnectionError(DatabaseError):
    """Errore connessione database"""
    pass


class DatabaseCorruptionError(DatabaseError):
    """Stato persistito inconsistente"""
    pass


class SchemaVersionError(DatabaseError):
    """Versione schema stato non supportata"""
    pass


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_validation_error(
    field: str,
    value: Any,
    expected: str,
) -> InvalidAmountError:
    """
    Helper per InvalidAmountError formattati.

    Args:
        field: Nome campo invalido
        value: Valore ricevuto
        expected: Valore/tipo atteso

    Returns:
        InvalidAmountError: Eccezione formattata

    Example:
        >>> raise format_validation_error("amount", -100, "positive integer")
    """
    return InvalidAmountError(
        message=f"Invalid field '{field}': expected {expected}, got {value!r}",
        code="VALIDATION_FAILED",
        details={"field": field, "value": value, "expected": expected}
    )


def format_offset_error(
    error_class: Type[LedgerOperationError],
    offset_id: int,
    issue: str,
    code: Optional[str] = None
) -> LedgerOperationError:
    """Helper per errori riferiti a un offset record"""
    return error_class(
        message=f"Offset #{offset_id}: {issue}",
        code=code,
        details={"offset_id": offset_id, "issue": issue}
    )


# ============================================================================
# EXPORT ALL
# ============================================================================

__all__ = [
    # Base
    "CarbonLedgerException",

    # Config
    "ConfigError",
    "InvalidConfigError",

    # Ledger operations
    "LedgerOperationError",
    "UnauthorizedError",
    "ContractPausedError",
    "InvalidAmountError",
    "InsufficientBalanceError",
    "MaxSupplyExceededError",
    "InvalidRecipientError",
    "InvalidOffsetterError",
    "AlreadyRegisteredError",
    "MetadataTooLongError",
    "InsufficientPaymentError",
    "InvalidPoolError",
    "OffsetAlreadyRetiredError",
    "InvalidStatusError",
    "OffsetNotFoundError",
    "ReentrantCallError",
    "StateStorageError",
    "ERROR_CLASSES",

    # Storage
    "StorageError",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseCorruptionError",
    "SchemaVersionError",

    # Helpers
    "format_validation_error",
    "format_offset_error",
]
