"""
Bundle actions and their canonical encoding.

An action is one of two variants:
- SetCodeAction: replace the executable image of a target
- SetStorageAction: write one 32-byte key/value cell of a target

Canonical encoding (tag byte first, so variants never collide):
- SetCode:    0x00 || target(20) || uint256_be(len(code)) || code
- SetStorage: 0x01 || target(20) || key(32) || value(32)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from chugsplash.protocol.enums import ActionType
from chugsplash.protocol.errors import ValidationError
from chugsplash.protocol.types import (
    WORD_LENGTH,
    Address,
    address_bytes,
    bytes_to_hex,
    hex_to_bytes,
    normalize_address,
    word_bytes,
)


# ===========================================================================
# Action Variants
# ===========================================================================


@dataclass(frozen=True)
class SetCodeAction:
    """
    Replace the code of `target` with `code`.

    Attributes:
        target: Address of the unit being upgraded
        code: Raw executable bytes
    """
    target: Address
    code: bytes

    action_type = ActionType.SET_CODE

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", normalize_address(self.target))
        object.__setattr__(self, "code", hex_to_bytes(self.code, "code"))

    @property
    def data(self) -> bytes:
        return self.code

    def encode(self) -> bytes:
        return (
            bytes([self.action_type.value])
            + address_bytes(self.target)
            + len(self.code).to_bytes(WORD_LENGTH, "big")
            + self.code
        )


@dataclass(frozen=True)
class SetStorageAction:
    """
    Write `value` at `key` in the storage of `target`.

    Attributes:
        target: Address of the unit being configured
        key: 32-byte storage key
        value: 32-byte storage value
    """
    target: Address
    key: bytes
    value: bytes

    action_type = ActionType.SET_STORAGE

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", normalize_address(self.target))
        object.__setattr__(self, "key", word_bytes(self.key, "storage key"))
        object.__setattr__(self, "value", word_bytes(self.value, "storage value"))

    @property
    def data(self) -> bytes:
        return self.key + self.value

    def encode(self) -> bytes:
        return (
            bytes([self.action_type.value])
            + address_bytes(self.target)
            + self.key
            + self.value
        )


Action = Union[SetCodeAction, SetStorageAction]


def encode_action(action: Action) -> bytes:
    """Return the canonical byte encoding hashed into the action's leaf."""
    return action.encode()


# ===========================================================================
# Wire Format
# ===========================================================================


def action_to_dict(action: Action) -> Dict[str, Any]:
    return {
        "actionType": action.action_type.value,
        "target": action.target,
        "data": bytes_to_hex(action.data),
    }


def action_from_dict(data: Dict[str, Any]) -> Action:
    """
    Decode the wire form `{"actionType", "target", "data"}`.

    For SetStorage, `data` is `key || value` (64 bytes).

    Raises:
        ValidationError: On unknown type or malformed fields
    """
    if not isinstance(data, dict):
        raise ValidationError("action must be an object")

    for field_name in ("actionType", "target", "data"):
        if field_name not in data:
            raise ValidationError(f"action is missing '{field_name}'")

    try:
        action_type = ActionType(data["actionType"])
    except ValueError:
        raise ValidationError(f"unknown actionType: {data['actionType']!r}")

    payload = hex_to_bytes(data["data"], "action data")

    if action_type is ActionType.SET_CODE:
        return SetCodeAction(target=data["target"], code=payload)

    if len(payload) != 2 * WORD_LENGTH:
        raise ValidationError(
            f"SetStorage data must be {2 * WORD_LENGTH} bytes, got {len(payload)}"
        )
    return SetStorageAction(
        target=data["target"],
        key=payload[:WORD_LENGTH],
        value=payload[WORD_LENGTH:],
    )


def action_from_raw(raw: Dict[str, Any]) -> Action:
    """
    Decode the authoring form used when building bundles:

        {"target": ..., "code": "0x..."}
        {"target": ..., "key": "0x...", "value": "0x..."}
    """
    if not isinstance(raw, dict) or "target" not in raw:
        raise ValidationError("raw action must be an object with a 'target'")

    if "code" in raw:
        return SetCodeAction(target=raw["target"], code=raw["code"])
    if "key" in raw and "value" in raw:
        return SetStorageAction(target=raw["target"], key=raw["key"], value=raw["value"])

    raise ValidationError("raw action needs either 'code' or 'key' and 'value'")
