"""
Execution ledger: durable owner/commitment/executed-index state.

The ledger is:
- Append-only (JSONL journal)
- Integrity-verified (hash chaining, optional Ed25519 signatures)
- The source of truth for the deployer state
"""

from .journal import LedgerJournal
from .ledger import ExecutionLedger
from .models import (
    BundleCommitment,
    LedgerEntry,
    LedgerEntryType,
    LedgerSigner,
    LedgerState,
    LedgerVerifier,
)
from .signing import Ed25519LedgerSigner, Ed25519LedgerVerifier

__all__ = [
    "BundleCommitment",
    "ExecutionLedger",
    "LedgerEntry",
    "LedgerEntryType",
    "LedgerJournal",
    "LedgerSigner",
    "LedgerState",
    "LedgerVerifier",
    "Ed25519LedgerSigner",
    "Ed25519LedgerVerifier",
]
