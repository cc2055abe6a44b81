"""
Dispatcher - applies a verified action to the Target Runtime.

Dispatch returns an undo callable restoring the target's previous value.
The deployer invokes it when the ledger cannot record the execution, so an
action's effect and its executed mark succeed or fail together.
"""

from __future__ import annotations

import logging
from typing import Callable

from chugsplash.bundle.actions import Action, SetCodeAction, SetStorageAction

from .target import TargetRuntime

logger = logging.getLogger(__name__)

Undo = Callable[[], None]


class Dispatcher:
    def __init__(self, runtime: TargetRuntime) -> None:
        self._runtime = runtime

    @property
    def runtime(self) -> TargetRuntime:
        return self._runtime

    def dispatch(self, action: Action) -> Undo:
        """
        Apply `action` and return a callable undoing it.

        Raises:
            TypeError: If the action is not a known variant
        """
        runtime = self._runtime

        if isinstance(action, SetCodeAction):
            previous_code = runtime.get_code(action.target)
            runtime.apply_code(action.target, action.code)
            logger.debug("SetCode target=%s bytes=%d", action.target, len(action.code))

            def undo_code() -> None:
                runtime.apply_code(action.target, previous_code)

            return undo_code

        if isinstance(action, SetStorageAction):
            previous_value = runtime.get_storage_cell(action.target, action.key)
            runtime.apply_storage_cell(action.target, action.key, action.value)
            logger.debug("SetStorage target=%s key=0x%s", action.target, action.key.hex())

            def undo_storage() -> None:
                runtime.apply_storage_cell(action.target, action.key, previous_value)

            return undo_storage

        raise TypeError(f"Unsupported action type: {type(action).__name__}")
