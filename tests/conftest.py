"""
Shared fixtures for the ChugSplash test suite.
"""

import os

import pytest

from chugsplash.bundle.builder import get_action_bundle
from chugsplash.core.deployer import ChugSplashDeployer
from chugsplash.core.settings import get_settings
from chugsplash.ledger.ledger import ExecutionLedger
from chugsplash.runtime.target import InMemoryTargetRuntime

OWNER = "0x" + "a1" * 20
NON_ZERO_ADDRESS = "0x" + "11" * 20


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; tests change the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def runtime():
    return InMemoryTargetRuntime()


@pytest.fixture
def ledger():
    return ExecutionLedger.open(OWNER)


@pytest.fixture
def deployer(ledger, runtime):
    return ChugSplashDeployer(ledger, runtime)


@pytest.fixture
def two_action_bundle():
    """SetCode + SetStorage on the same target."""
    return get_action_bundle([
        {"target": NON_ZERO_ADDRESS, "code": "0x1234"},
        {
            "target": NON_ZERO_ADDRESS,
            "key": "0x" + "11" * 32,
            "value": "0x" + "22" * 32,
        },
    ])


@pytest.fixture
def three_code_bundle():
    return get_action_bundle([
        {"target": NON_ZERO_ADDRESS, "code": "0x1234"},
        {"target": NON_ZERO_ADDRESS, "code": "0x4321"},
        {"target": NON_ZERO_ADDRESS, "code": "0x5678"},
    ])


@pytest.fixture
def fail_next_fsync(monkeypatch):
    """Returns a function that makes the next os.fsync call raise OSError."""
    real_fsync = os.fsync
    armed = []

    def flaky_fsync(fd):
        if armed:
            armed.pop()
            raise OSError("fsync failed")
        return real_fsync(fd)

    monkeypatch.setattr(os, "fsync", flaky_fsync)
    return lambda: armed.append(True)
