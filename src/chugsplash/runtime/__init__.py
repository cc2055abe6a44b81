from .dispatcher import Dispatcher
from .target import EMPTY_CELL, InMemoryTargetRuntime, TargetRuntime

__all__ = ["Dispatcher", "EMPTY_CELL", "InMemoryTargetRuntime", "TargetRuntime"]
