"""
Ledger data models.

All journal entries are versioned and include:
- Sequential ordering
- Hash chaining for integrity
- Timestamp (ISO 8601)
- Type classification
- Optional Ed25519 signature over entry_hash

The ledger state is never written directly. It is derived by applying
journal entries in order, both live and on recovery.
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Set

from chugsplash.protocol.errors import LedgerIntegrityError
from chugsplash.protocol.types import ZERO_HASH, Address, Hash256
from chugsplash.utils.json import canonical_json


# ===========================================================================
# Signing Protocol
# ===========================================================================

class LedgerSigner(Protocol):
    """
    Protocol for journal entry signing.

    Implementations MUST:
    - Use Ed25519 or equivalent (256-bit security)
    - Provide key_id for verification lookup
    """

    @property
    def key_id(self) -> str:
        """Unique identifier for the signing key."""
        ...

    def sign(self, data: bytes) -> bytes:
        """Sign data, return raw signature bytes."""
        ...


class LedgerVerifier(Protocol):
    """Protocol for offline journal signature verification."""

    def verify(self, data: bytes, signature: bytes, key_id: str) -> bool:
        """Verify signature. Returns True if valid, False if invalid."""
        ...


class LedgerEntryType(str, Enum):
    """
    Journal entry types (stable schema versioning).
    """

    LEDGER_INITIALIZED = "ledger.initialized"
    OWNER_SET = "owner.set"
    BUNDLE_APPROVED = "bundle.approved"
    BUNDLE_CANCELLED = "bundle.cancelled"
    ACTION_EXECUTED = "action.executed"


# ===========================================================================
# Journal Entry
# ===========================================================================


@dataclass
class LedgerEntry:
    """
    Single journal entry (append-only record).

    Entries are immutable once written; hash chaining ensures integrity.
    """

    seq: int  # Monotonic sequence number
    timestamp_iso: str
    entry_type: LedgerEntryType
    payload: Dict[str, Any]

    # Integrity
    prev_hash: Optional[str] = None
    entry_hash: Optional[str] = None

    # Signature
    signature: Optional[str] = None  # Base64-encoded Ed25519 signature
    signer_key_id: Optional[str] = None

    version: str = "1.0"

    @property
    def is_signed(self) -> bool:
        return self.signature is not None and self.signer_key_id is not None

    def compute_hash(self) -> str:
        """
        Compute deterministic hash for this entry.
        Signature fields are excluded (the signature covers this hash).
        """
        data = {
            "seq": self.seq,
            "timestamp_iso": self.timestamp_iso,
            "entry_type": self.entry_type.value,
            "payload": self.payload,
            "prev_hash": self.prev_hash,
            "version": self.version,
        }
        return hashlib.sha256(canonical_json(data)).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "seq": self.seq,
            "timestamp_iso": self.timestamp_iso,
            "entry_type": self.entry_type.value,
            "payload": self.payload,
            "prev_hash": self.prev_hash,
            "entry_hash": self.entry_hash,
            "version": self.version,
        }
        if self.signature is not None:
            result["signature"] = self.signature
        if self.signer_key_id is not None:
            result["signer_key_id"] = self.signer_key_id
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEntry":
        try:
            return cls(
                seq=data["seq"],
                timestamp_iso=data["timestamp_iso"],
                entry_type=LedgerEntryType(data["entry_type"]),
                payload=data["payload"],
                prev_hash=data.get("prev_hash"),
                entry_hash=data.get("entry_hash"),
                signature=data.get("signature"),
                signer_key_id=data.get("signer_key_id"),
                version=data.get("version", "1.0"),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise LedgerIntegrityError(f"Malformed journal entry: {e}")

    def sign(self, signer: LedgerSigner) -> None:
        """
        Sign this entry. MUST be called after entry_hash is set.

        Raises:
            ValueError: If entry_hash is not set
        """
        if not self.entry_hash:
            raise ValueError("Cannot sign entry without entry_hash. Call compute_hash() first.")

        signature_bytes = signer.sign(self.entry_hash.encode("utf-8"))
        self.signature = base64.b64encode(signature_bytes).decode("ascii")
        self.signer_key_id = signer.key_id

    def verify_signature(self, verifier: LedgerVerifier) -> bool:
        """
        Verify this entry's signature.

        Raises:
            LedgerIntegrityError: If signature fields are missing or malformed
        """
        if not self.is_signed or not self.entry_hash:
            raise LedgerIntegrityError(f"Entry seq={self.seq} is not signed")

        try:
            signature_bytes = base64.b64decode(self.signature, validate=True)
        except ValueError as e:
            raise LedgerIntegrityError(f"Invalid signature encoding at seq={self.seq}: {e}")

        return verifier.verify(
            self.entry_hash.encode("utf-8"),
            signature_bytes,
            self.signer_key_id,
        )


# ===========================================================================
# Commitment and State
# ===========================================================================


@dataclass(frozen=True)
class BundleCommitment:
    """The `(root, size)` pair of an approved bundle."""
    root: Hash256
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"root": self.root, "size": self.size}


@dataclass
class LedgerState:
    """
    Deployer state as derived from the journal.

    Invariants:
    - root == ZERO_HASH and size == 0 exactly when no bundle is active
    - every executed index is < size
    - executed_count == len(executed)
    """
    owner: Optional[Address] = None
    root: Hash256 = ZERO_HASH
    size: int = 0
    executed: Set[int] = field(default_factory=set)
    executed_count: int = 0

    @property
    def commitment(self) -> Optional[BundleCommitment]:
        if self.root == ZERO_HASH:
            return None
        return BundleCommitment(root=self.root, size=self.size)

    def has_active_bundle(self) -> bool:
        return self.root != ZERO_HASH and self.executed_count < self.size

    def clear_bundle(self) -> None:
        self.root = ZERO_HASH
        self.size = 0
        self.executed = set()
        self.executed_count = 0

    def apply(self, entry: LedgerEntry) -> None:
        """
        Apply one journal entry.

        Raises:
            LedgerIntegrityError: If the entry is inconsistent with the state
        """
        payload = entry.payload
        entry_type = entry.entry_type

        if entry_type is LedgerEntryType.LEDGER_INITIALIZED:
            if self.owner is not None:
                raise LedgerIntegrityError(f"Ledger initialized twice (seq={entry.seq})")
            self.owner = payload["owner"]
            return

        if self.owner is None:
            raise LedgerIntegrityError(f"Entry seq={entry.seq} precedes ledger initialization")

        if entry_type is LedgerEntryType.OWNER_SET:
            self.owner = payload["new_owner"]

        elif entry_type is LedgerEntryType.BUNDLE_APPROVED:
            if self.has_active_bundle():
                raise LedgerIntegrityError(f"Approval at seq={entry.seq} while a bundle is active")
            self.clear_bundle()
            self.root = payload["root"]
            self.size = payload["size"]

        elif entry_type is LedgerEntryType.BUNDLE_CANCELLED:
            if not self.has_active_bundle():
                raise LedgerIntegrityError(f"Cancellation at seq={entry.seq} without an active bundle")
            self.clear_bundle()

        elif entry_type is LedgerEntryType.ACTION_EXECUTED:
            index = payload["index"]
            if not self.has_active_bundle() or payload["root"] != self.root:
                raise LedgerIntegrityError(f"Execution at seq={entry.seq} outside its bundle")
            if index in self.executed or not 0 <= index < self.size:
                raise LedgerIntegrityError(f"Invalid execution index {index} at seq={entry.seq}")
            self.executed.add(index)
            self.executed_count += 1
            if self.executed_count == self.size:
                self.clear_bundle()
