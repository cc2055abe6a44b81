"""
ChugSplash Deployer

Approval and execution of action bundles.

CRITICAL INVARIANTS:
1. Only the owner approves, cancels or transfers ownership
2. Anyone may execute an action, authorized purely by its inclusion proof
3. At most one bundle is active; it clears itself once fully executed
4. Each action index executes at most once per approval
5. A rejected call leaves the ledger and the target runtime unchanged

Cancellation stops further execution. It does not undo effects already
applied to the target runtime.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from chugsplash.bundle.actions import Action
from chugsplash.bundle.builder import ActionProof
from chugsplash.bundle.tree import hash_leaf_data
from chugsplash.bundle.verifier import verify_action_proof
from chugsplash.ledger.ledger import ExecutionLedger
from chugsplash.protocol.errors import (
    AlreadyExecutedError,
    InvalidProofError,
    NoActiveBundleError,
    NotOwnerError,
    ValidationError,
)
from chugsplash.protocol.types import Address, Hash256, normalize_address
from chugsplash.runtime.dispatcher import Dispatcher
from chugsplash.runtime.target import TargetRuntime

logger = logging.getLogger(__name__)


class ChugSplashDeployer:
    """
    Serialized front door to the ledger and the target runtime.

    Every public operation runs under one lock, so each call is an atomic
    transaction against the ledger.
    """

    def __init__(self, ledger: ExecutionLedger, runtime: TargetRuntime) -> None:
        self._ledger = ledger
        self._dispatcher = Dispatcher(runtime)
        self._lock = threading.RLock()

    @property
    def ledger(self) -> ExecutionLedger:
        return self._ledger

    @property
    def runtime(self) -> TargetRuntime:
        return self._dispatcher.runtime

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def _require_owner(self, caller: Optional[Address]) -> None:
        try:
            is_owner = caller is not None and normalize_address(caller) == self._ledger.owner
        except ValidationError:
            is_owner = False

        if not is_owner:
            logger.warning("Rejected owner-only call from %s", caller)
            raise NotOwnerError()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def owner(self) -> Address:
        return self._ledger.owner

    def current_bundle_hash(self) -> Hash256:
        return self._ledger.current_root

    def current_bundle_size(self) -> int:
        return self._ledger.current_size

    def has_active_bundle(self) -> bool:
        return self._ledger.has_active_bundle()

    def executed_count(self) -> int:
        return self._ledger.executed_count

    def is_action_executed(self, index: int) -> bool:
        return self._ledger.is_executed(index)

    def status(self) -> Dict[str, Any]:
        return self._ledger.snapshot()

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def set_owner(self, caller: Optional[Address], new_owner: Address) -> None:
        with self._lock:
            self._require_owner(caller)
            previous = self._ledger.owner
            self._ledger.set_owner(new_owner)
            logger.info("Owner changed %s -> %s", previous, self._ledger.owner)

    def approve_transaction_bundle(self, caller: Optional[Address], root: Hash256, size: int) -> None:
        """
        Approve a bundle commitment.

        Raises:
            NotOwnerError: If caller is not the owner
            BundleAlreadyActiveError: If the previous bundle is still active
            ValidationError: If root/size are sentinel or malformed
        """
        with self._lock:
            self._require_owner(caller)
            self._ledger.approve(root, size)
            logger.info(
                "Bundle approved root=%s size=%d",
                self._ledger.current_root,
                self._ledger.current_size,
            )

    def cancel_transaction_bundle(self, caller: Optional[Address]) -> None:
        """
        Cancel the active bundle, discarding progress.

        Raises:
            NotOwnerError: If caller is not the owner
            NoActiveBundleError: If nothing is active
        """
        with self._lock:
            self._require_owner(caller)
            root = self._ledger.current_root
            executed = self._ledger.executed_count
            self._ledger.cancel()
            logger.info("Bundle cancelled root=%s after %d executed actions", root, executed)

    # ------------------------------------------------------------------
    # Permissionless execution
    # ------------------------------------------------------------------

    def execute_action(self, action: Action, proof: ActionProof, caller: Optional[Address] = None) -> None:
        """
        Execute one committed action.

        Raises:
            NoActiveBundleError: If nothing is active
            InvalidProofError: If the proof does not match the commitment
            AlreadyExecutedError: If the action index already executed
        """
        with self._lock:
            if not self._ledger.has_active_bundle():
                raise NoActiveBundleError()

            root = self._ledger.current_root
            size = self._ledger.current_size
            if not verify_action_proof(root, size, action, proof):
                logger.warning(
                    "Invalid proof for index %s against root=%s",
                    proof.action_index,
                    root,
                )
                raise InvalidProofError()

            index = proof.action_index
            if self._ledger.is_executed(index):
                raise AlreadyExecutedError()

            undo = self._dispatcher.dispatch(action)
            try:
                completed = self._ledger.record_execution(
                    index,
                    {
                        "action_type": action.action_type.value,
                        "target": action.target,
                        "leaf_hash": hash_leaf_data(action.encode()),
                        "caller": caller,
                    },
                )
            except Exception:
                logger.exception("Ledger commit failed for index %d; reverting target", index)
                try:
                    undo()
                except Exception:
                    logger.exception("Reverting target for index %d failed", index)
                raise

            logger.info(
                "Executed action %d (%s) of bundle %s",
                index,
                action.action_type.name,
                root,
            )
            if completed:
                logger.info("Bundle %s fully executed (%d actions)", root, size)
