"""
CarbonLedger - Input Validation
================================
Guardie sugli input delle operazioni pubbliche.

Gli amount sono interi non negativi (uint);
stringhe e liste hanno limiti fissi. Ogni guardia solleva l'errore
di dominio corrispondente, senza toccare lo stato.
"""

from typing import Any, Iterable, Tuple

from carbon_ledger.errors import (
    MetadataTooLongError,
    format_validation_error,
)


def is_uint(value: Any) -> bool:
    """True se value è un intero >= 0 (bool escluso)"""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def require_uint(field: str, value: Any) -> int:
    """
    Verifica che value sia un intero non negativo.

    Raises:
        InvalidAmountError: Se value non è un uint

    Examples:
        >>> require_uint("amount", 10)
        10
    """
    if not is_uint(value):
        raise format_validation_error(field, value, "non-negative integer")
    return value


def require_bounded_string(field: str, value: Any, max_len: int) -> str:
    """
    Verifica stringa con lunghezza massima.

    Raises:
        MetadataTooLongError: Se len(value) > max_len
        InvalidAmountError: Se value non è una stringa
    """
    if not isinstance(value, str):
        raise format_validation_error(field, value, "string")

    if len(value) > max_len:
        raise MetadataTooLongError(
            f"{field} too long: {len(value)} > {max_len}",
            code="METADATA_TOO_LONG",
            details={"field": field, "length": len(value), "max_length": max_len},
        )
    return value


def require_bounded_list(
    field: str,
    values: Iterable[Any],
    max_items: int,
    max_item_len: int,
) -> Tuple[str, ...]:
    """
    Verifica lista di stringhe con limiti su numero e lunghezza elementi.

    Returns:
        tuple: Elementi come tupla immutabile
    """
    if isinstance(values, str):
        raise format_validation_error(field, values, "list of strings")

    try:
        items = tuple(values)
    except TypeError as exc:
        raise format_validation_error(field, values, "list of strings") from exc

    if len(items) > max_items:
        raise MetadataTooLongError(
            f"{field} has too many items: {len(items)} > {max_items}",
            code="LIST_TOO_LONG",
            details={"field": field, "count": len(items), "max_items": max_items},
        )

    for item in items:
        require_bounded_string(f"{field}[]", item, max_item_len)

    return items


__all__ = [
    "is_uint",
    "require_uint",
    "require_bounded_string",
    "require_bounded_list",
]
