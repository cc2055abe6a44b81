from .deployer import ChugSplashDeployer
from .factory import create_deployer, open_ledger
from .settings import ChugSplashSettings, HTTPSettings, LedgerSettings, get_settings

__all__ = [
    "ChugSplashDeployer",
    "ChugSplashSettings",
    "HTTPSettings",
    "LedgerSettings",
    "create_deployer",
    "get_settings",
    "open_ledger",
]
