"""
Execution Ledger - the durable state of the deployer.

Tracks:
- the owner address
- the active bundle commitment (root, size)
- which action indices of that bundle have executed

Every mutation is a journal append followed by applying the same entry to
the in-memory state, so recovery is a plain replay of the journal.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from chugsplash.protocol.errors import (
    AlreadyExecutedError,
    BundleAlreadyActiveError,
    LedgerIntegrityError,
    NoActiveBundleError,
    ValidationError,
)
from chugsplash.protocol.types import ZERO_HASH, Address, Hash256, normalize_address, normalize_hash

from .journal import LedgerJournal
from .models import (
    BundleCommitment,
    LedgerEntry,
    LedgerEntryType,
    LedgerSigner,
    LedgerState,
    LedgerVerifier,
)

logger = logging.getLogger(__name__)


class ExecutionLedger:
    """
    Ledger state machine over a LedgerJournal.

    States: Empty (no commitment) and Active (commitment with
    executed_count < size). The ledger enforces state preconditions only;
    caller capabilities are checked by the deployer.
    """

    def __init__(self, journal: LedgerJournal, *, verifier: Optional[LedgerVerifier] = None) -> None:
        self._journal = journal
        self._state = LedgerState()
        self._lock = threading.RLock()
        self._replay(verifier)

    @classmethod
    def open(
        cls,
        owner: Optional[Address] = None,
        *,
        directory: Optional[str] = None,
        sync: bool = True,
        signer: Optional[LedgerSigner] = None,
        verifier: Optional[LedgerVerifier] = None,
    ) -> "ExecutionLedger":
        """
        Open the ledger in `directory` (or in memory), initializing it with
        `owner` when the journal is empty.

        Raises:
            LedgerIntegrityError: If the existing journal fails verification
            ValidationError: If a new ledger has no owner
        """
        if directory is not None:
            journal = LedgerJournal.in_directory(directory, sync=sync, signer=signer)
        else:
            journal = LedgerJournal(sync=sync, signer=signer)

        ledger = cls(journal, verifier=verifier)
        if not ledger.is_initialized:
            if owner is None:
                raise ValidationError("An initial owner is required to create a ledger")
            ledger.initialize(owner)
        elif owner is not None and normalize_address(owner) != ledger.owner:
            logger.info("Existing ledger keeps owner %s (ignoring %s)", ledger.owner, owner)
        return ledger

    def _replay(self, verifier: Optional[LedgerVerifier]) -> None:
        ok, reason = self._journal.verify_integrity(verifier)
        if not ok:
            raise LedgerIntegrityError(f"Ledger journal failed verification: {reason}")

        entries = self._journal.entries()
        for entry in entries:
            self._state.apply(entry)

        if entries:
            logger.info(
                "Recovered ledger from %d entries (owner=%s active=%s)",
                len(entries),
                self._state.owner,
                self._state.has_active_bundle(),
            )

    def _commit(self, entry_type: LedgerEntryType, payload: Dict[str, Any]) -> LedgerEntry:
        entry = self._journal.append(entry_type, payload)
        self._state.apply(entry)
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._state.owner is not None

    @property
    def owner(self) -> Optional[Address]:
        return self._state.owner

    @property
    def current_root(self) -> Hash256:
        return self._state.root

    @property
    def current_size(self) -> int:
        return self._state.size

    @property
    def executed_count(self) -> int:
        return self._state.executed_count

    @property
    def commitment(self) -> Optional[BundleCommitment]:
        return self._state.commitment

    @property
    def journal(self) -> LedgerJournal:
        return self._journal

    def has_active_bundle(self) -> bool:
        return self._state.has_active_bundle()

    def is_executed(self, index: int) -> bool:
        with self._lock:
            return index in self._state.executed

    def history(self) -> List[LedgerEntry]:
        return self._journal.entries()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def initialize(self, owner: Address) -> LedgerEntry:
        with self._lock:
            if self.is_initialized:
                raise LedgerIntegrityError("Ledger is already initialized")
            entry = self._commit(
                LedgerEntryType.LEDGER_INITIALIZED,
                {"owner": normalize_address(owner)},
            )
            logger.info("Ledger initialized with owner %s", self._state.owner)
            return entry

    def set_owner(self, new_owner: Address) -> LedgerEntry:
        with self._lock:
            return self._commit(
                LedgerEntryType.OWNER_SET,
                {
                    "previous_owner": self._state.owner,
                    "new_owner": normalize_address(new_owner),
                },
            )

    def approve(self, root: Hash256, size: int) -> LedgerEntry:
        """
        Make `(root, size)` the active commitment.

        Raises:
            BundleAlreadyActiveError: If a bundle is still active
            ValidationError: If root is the zero hash or size is not positive
        """
        with self._lock:
            if self._state.has_active_bundle():
                raise BundleAlreadyActiveError()

            normalized = normalize_hash(root)
            if normalized == ZERO_HASH:
                raise ValidationError("bundle root must not be the zero hash")
            if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
                raise ValidationError(f"bundle size must be a positive integer, got {size!r}")

            return self._commit(
                LedgerEntryType.BUNDLE_APPROVED,
                {"root": normalized, "size": size},
            )

    def cancel(self) -> LedgerEntry:
        """
        Discard the active commitment and its progress.

        Raises:
            NoActiveBundleError: If nothing is active
        """
        with self._lock:
            if not self._state.has_active_bundle():
                raise NoActiveBundleError("cannot cancel when there is no active bundle")

            return self._commit(
                LedgerEntryType.BUNDLE_CANCELLED,
                {
                    "root": self._state.root,
                    "size": self._state.size,
                    "executed_count": self._state.executed_count,
                },
            )

    def record_execution(self, index: int, details: Optional[Dict[str, Any]] = None) -> bool:
        """
        Mark `index` of the active bundle executed.

        Returns:
            True if this execution completed the bundle

        Raises:
            NoActiveBundleError: If nothing is active
            AlreadyExecutedError: If the index already executed
            ValidationError: If the index is outside the bundle
        """
        with self._lock:
            if not self._state.has_active_bundle():
                raise NoActiveBundleError()
            if not 0 <= index < self._state.size:
                raise ValidationError(f"action index {index} is outside the bundle")
            if index in self._state.executed:
                raise AlreadyExecutedError()

            payload: Dict[str, Any] = {"root": self._state.root, "index": index}
            if details:
                payload.update(details)

            self._commit(LedgerEntryType.ACTION_EXECUTED, payload)
            return not self._state.has_active_bundle()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "owner": self._state.owner,
                "bundleHash": self._state.root,
                "bundleSize": self._state.size,
                "executedCount": self._state.executed_count,
                "executed": sorted(self._state.executed),
                "active": self._state.has_active_bundle(),
                "journalEntries": self._journal.entry_count,
            }
