"""
CarbonLedger - Journaled Mappings
==================================
Mappe copy-on-write usate dallo stato staged.

Un JournaledDict legge dalla mappa committata e tiene le scritture in un
journal separato. commit() le applica alla mappa sottostante; scartare
il JournaledDict equivale a un rollback. Il costo di una copia staged è
quindi proporzionale alle chiavi scritte, non alla dimensione dello stato.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, Hashable, Iterator, Set


_DELETED = object()


class JournaledDict(MutableMapping):
    """
    Vista scrivibile sopra una mappa committata.

    Examples:
        >>> committed = {"wallet_1": 10}
        >>> staged = JournaledDict.over(committed)
        >>> staged["wallet_1"] = 25
        >>> committed["wallet_1"]
        10
        >>> staged.commit()
        >>> committed["wallet_1"]
        25
    """

    def __init__(self, base: MutableMapping):
        self._base = base
        self._writes: Dict[Hashable, Any] = {}

    @classmethod
    def over(cls, mapping: MutableMapping) -> "JournaledDict":
        """Nuovo journal sopra `mapping` (senza annidare journal già committati)"""
        if isinstance(mapping, JournaledDict) and not mapping.dirty:
            mapping = mapping._base
        return cls(mapping)

    # ========================================================================
    # MAPPING PROTOCOL
    # ========================================================================

    def __getitem__(self, key):
        if key in self._writes:
            value = self._writes[key]
            if value is _DELETED:
                raise KeyError(key)
            return value
        return self._base[key]

    def __setitem__(self, key, value) -> None:
        self._writes[key] = value

    def __delitem__(self, key) -> None:
        if key not in self:
            raise KeyError(key)
        self._writes[key] = _DELETED

    def __contains__(self, key) -> bool:
        if key in self._writes:
            return self._writes[key] is not _DELETED
        return key in self._base

    def __iter__(self) -> Iterator:
        for key in self._base:
            if self._writes.get(key) is not _DELETED:
                yield key
        for key, value in self._writes.items():
            if key not in self._base and value is not _DELETED:
                yield key

    def __len__(self) -> int:
        added = sum(
            1 for key, value in self._writes.items()
            if value is not _DELETED and key not in self._base
        )
        removed = sum(
            1 for key, value in self._writes.items()
            if value is _DELETED and key in self._base
        )
        return len(self._base) + added - removed

    # ========================================================================
    # JOURNAL
    # ========================================================================

    @property
    def dirty(self) -> bool:
        return bool(self._writes)

    def written(self) -> Dict[Hashable, Any]:
        """Chiavi scritte con il loro nuovo valore"""
        return {
            key: value for key, value in self._writes.items()
            if value is not _DELETED
        }

    def deleted(self) -> Set[Hashable]:
        return {key for key, value in self._writes.items() if value is _DELETED}

    def commit(self) -> None:
        """Applica il journal alla mappa sottostante e lo svuota"""
        for key, value in self._writes.items():
            if value is _DELETED:
                self._base.pop(key, None)
            else:
                self._base[key] = value
        self._writes.clear()

    def __repr__(self) -> str:
        return f"JournaledDict(size={len(self)}, pending={len(self._writes)})"


__all__ = ["JournaledDict"]
