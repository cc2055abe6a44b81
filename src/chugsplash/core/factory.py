"""
Wires settings into a ready deployer (ledger + signer + runtime).
"""

from __future__ import annotations

import logging
from typing import Optional

from chugsplash.ledger.ledger import ExecutionLedger
from chugsplash.ledger.signing import Ed25519LedgerSigner, Ed25519LedgerVerifier
from chugsplash.runtime.target import InMemoryTargetRuntime, TargetRuntime

from .deployer import ChugSplashDeployer
from .settings import ChugSplashSettings, LedgerSettings, get_settings

logger = logging.getLogger(__name__)


def open_ledger(settings: LedgerSettings, owner: Optional[str] = None) -> ExecutionLedger:
    signer = None
    verifier = None
    if settings.signing_key_file:
        signer = Ed25519LedgerSigner.from_pem_file(settings.signing_key_file)
        if settings.require_signatures:
            verifier = Ed25519LedgerVerifier.for_signer(signer)
        logger.info("Journal signing enabled (key_id=%s)", signer.key_id)

    return ExecutionLedger.open(
        owner,
        directory=settings.directory,
        sync=settings.sync,
        signer=signer,
        verifier=verifier,
    )


def create_deployer(
    settings: Optional[ChugSplashSettings] = None,
    runtime: Optional[TargetRuntime] = None,
) -> ChugSplashDeployer:
    settings = settings or get_settings()
    ledger = open_ledger(settings.ledger, owner=settings.owner)
    return ChugSplashDeployer(ledger, runtime or InMemoryTargetRuntime())
