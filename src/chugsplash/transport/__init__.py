"""
Remote access to a deployer.

HTTP server (FastAPI) and client (requests) share the same error wire format.
"""

from .client import DeployerClient
from .http import CALLER_HEADER, create_app

__all__ = ["CALLER_HEADER", "DeployerClient", "create_app"]
