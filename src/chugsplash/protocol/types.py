"""
Fixed-width value types shared by the bundle, ledger and runtime layers.

All values travel as 0x-prefixed lowercase hex strings and are converted to
raw bytes only where they are hashed or compared.
"""

from __future__ import annotations

from typing import Union

from .errors import ValidationError

Address = str
Hash256 = str

ADDRESS_LENGTH = 20
WORD_LENGTH = 32

ZERO_HASH: Hash256 = "0x" + "00" * WORD_LENGTH


def _strip_prefix(value: str) -> str:
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def hex_to_bytes(value: Union[str, bytes], what: str = "value") -> bytes:
    """Decode 0x-hex (or pass through bytes); raise ValidationError on junk."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ValidationError(f"{what} must be a hex string, got {type(value).__name__}")
    try:
        return bytes.fromhex(_strip_prefix(value))
    except ValueError:
        raise ValidationError(f"{what} is not valid hex: {value!r}")


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _fixed(value: Union[str, bytes], length: int, what: str) -> bytes:
    raw = hex_to_bytes(value, what)
    if len(raw) != length:
        raise ValidationError(f"{what} must be {length} bytes, got {len(raw)}")
    return raw


def address_bytes(value: Union[str, bytes]) -> bytes:
    return _fixed(value, ADDRESS_LENGTH, "address")


def word_bytes(value: Union[str, bytes], what: str = "word") -> bytes:
    return _fixed(value, WORD_LENGTH, what)


def normalize_address(value: Union[str, bytes]) -> Address:
    return bytes_to_hex(address_bytes(value))


def normalize_hash(value: Union[str, bytes]) -> Hash256:
    return bytes_to_hex(word_bytes(value, "hash"))
