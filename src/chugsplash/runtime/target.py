"""
Target Runtime boundary.

The deployer never interprets code or storage contents. It only asks the
runtime to replace a target's code or write one of its storage cells, and
reads the previous value so a failed ledger commit can be undone.
"""

from __future__ import annotations

import threading
from typing import Dict, Protocol, Tuple

from chugsplash.protocol.types import Address, normalize_address

EMPTY_CELL = bytes(32)


class TargetRuntime(Protocol):
    """Protocol implemented by whatever hosts the target execution units."""

    def apply_code(self, target: Address, code: bytes) -> None:
        """Replace the executable image of `target`."""
        ...

    def apply_storage_cell(self, target: Address, key: bytes, value: bytes) -> None:
        """Write a 32-byte cell in the storage namespace of `target`."""
        ...

    def get_code(self, target: Address) -> bytes:
        ...

    def get_storage_cell(self, target: Address, key: bytes) -> bytes:
        ...


class InMemoryTargetRuntime:
    """
    Reference runtime keeping code and storage in dictionaries.

    Unknown targets have empty code and all-zero storage cells.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._code: Dict[Address, bytes] = {}
        self._storage: Dict[Tuple[Address, bytes], bytes] = {}

    def apply_code(self, target: Address, code: bytes) -> None:
        with self._lock:
            self._code[normalize_address(target)] = bytes(code)

    def apply_storage_cell(self, target: Address, key: bytes, value: bytes) -> None:
        with self._lock:
            self._storage[(normalize_address(target), bytes(key))] = bytes(value)

    def get_code(self, target: Address) -> bytes:
        with self._lock:
            return self._code.get(normalize_address(target), b"")

    def get_storage_cell(self, target: Address, key: bytes) -> bytes:
        with self._lock:
            return self._storage.get((normalize_address(target), bytes(key)), EMPTY_CELL)

    def snapshot(self) -> Dict[str, Dict[str, str]]:
        """Hex view of the runtime, used by status endpoints and tests."""
        with self._lock:
            storage: Dict[str, Dict[str, str]] = {}
            for (target, key), value in self._storage.items():
                storage.setdefault(target, {})["0x" + key.hex()] = "0x" + value.hex()
            return {
                "code": {t: "0x" + c.hex() for t, c in self._code.items()},
                "storage": storage,
            }
