from .bundle import (
    ActionBundle,
    ActionProof,
    BundleBuilder,
    SetCodeAction,
    SetStorageAction,
    get_action_bundle,
    verify_action_proof,
)
from .core.deployer import ChugSplashDeployer
from .ledger import ExecutionLedger
from .runtime import InMemoryTargetRuntime, TargetRuntime

__version__ = "0.1.0"

__all__ = [
    "ActionBundle",
    "ActionProof",
    "BundleBuilder",
    "ChugSplashDeployer",
    "ExecutionLedger",
    "InMemoryTargetRuntime",
    "SetCodeAction",
    "SetStorageAction",
    "TargetRuntime",
    "get_action_bundle",
    "verify_action_proof",
]
