"""
CarbonLedger - Operation Result
================================
Risultato discriminato delle operazioni pubbliche: esattamente uno tra
valore di successo e ErrorKind.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from carbon_ledger.constants import ErrorKind
from carbon_ledger.errors import ERROR_CLASSES


T = TypeVar("T")


@dataclass(frozen=True)
class OpResult(Generic[T]):
    """
    Esito di un'operazione.

    Attributes:
        ok (bool): True se l'operazione è stata committata
        value: Valore di successo (None se fallita)
        error (ErrorKind): Tipo errore (None se riuscita)
        message (str): Descrizione errore
        details (dict): Dettagli errore

    Examples:
        >>> result = OpResult.success(1)
        >>> result.unwrap()
        1
        >>> failed = OpResult.failure(ErrorKind.PAUSED, "Ledger is paused")
        >>> failed.error_code
        101
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: T) -> OpResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ) -> OpResult[T]:
        return cls(ok=False, error=error, message=message, details=details or {})

    @property
    def error_code(self) -> Optional[int]:
        """Codice numerico (100-112) o None"""
        return int(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """
        Valore di successo, oppure solleva l'eccezione del relativo ErrorKind.

        Raises:
            LedgerOperationError: Se il risultato è un fallimento
        """
        if self.ok:
            return self.value
        error_class = ERROR_CLASSES[self.error]
        raise error_class(self.message or self.error.name, details=self.details)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": self.value}
        return {
            "ok": False,
            "error": self.error.name,
            "code": self.error_code,
            "message": self.message,
        }


__all__ = ["OpResult"]
