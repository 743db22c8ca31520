"""
CarbonLedger - Logical Clock
=============================
Sorgente di tempo iniettabile per created_at, expiry e last_offset_time.

- BlockHeightClock: contatore tipo block height (deterministico)
- SystemClock: secondi Unix
"""

import time
import threading
from typing import Protocol, runtime_checkable

from carbon_ledger.constants import DEFAULT_GENESIS_HEIGHT
from carbon_ledger.errors import InvalidConfigError


@runtime_checkable
class Clock(Protocol):
    """Tempo logico monotono"""

    def now(self) -> int:
        ...


class BlockHeightClock:
    """
    Clock a block height.

    Il valore cambia solo con advance()/set_height(): in un'unica
    operazione tutti i timestamp coincidono, come all'interno di un blocco.

    Examples:
        >>> clock = BlockHeightClock(1000)
        >>> clock.now()
        1000
        >>> clock.advance(5)
        1005
    """

    def __init__(self, height: int = DEFAULT_GENESIS_HEIGHT):
        if height < 0:
            raise ValueError(f"Invalid height: {height}")
        self._height = height
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Avanza di N blocchi, restituisce la nuova height"""
        if blocks < 0:
            raise ValueError("Clock cannot move backwards")
        with self._lock:
            self._height += blocks
            return self._height

    def set_height(self, height: int) -> None:
        with self._lock:
            if height < self._height:
                raise ValueError(
                    f"Clock cannot move backwards: {height} < {self._height}"
                )
            self._height = height

    def __repr__(self) -> str:
        return f"BlockHeightClock(height={self._height})"


class SystemClock:
    """Clock di sistema (secondi Unix, mai decrescente)"""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


def create_clock(mode: str, genesis_height: int = DEFAULT_GENESIS_HEIGHT) -> Clock:
    """Factory da LedgerSettings.clock_mode"""
    if mode == "system":
        return SystemClock()
    if mode == "block":
        return BlockHeightClock(genesis_height)
    raise InvalidConfigError(
        f"Unknown clock mode: {mode}",
        code="INVALID_CLOCK_MODE",
        details={"mode": mode}
    )


__all__ = [
    "Clock",
    "BlockHeightClock",
    "SystemClock",
    "create_clock",
]
