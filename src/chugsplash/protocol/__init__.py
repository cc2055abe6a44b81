from .enums import ActionType, ErrorCode
from .errors import (
    AlreadyExecutedError,
    BundleAlreadyActiveError,
    ChugSplashError,
    InvalidProofError,
    LedgerIntegrityError,
    NoActiveBundleError,
    NotOwnerError,
    ValidationError,
    error_from_code,
)
from .types import (
    ZERO_HASH,
    Address,
    Hash256,
    normalize_address,
    normalize_hash,
)

__all__ = [
    "ActionType",
    "ErrorCode",
    "ChugSplashError",
    "NotOwnerError",
    "BundleAlreadyActiveError",
    "NoActiveBundleError",
    "InvalidProofError",
    "AlreadyExecutedError",
    "ValidationError",
    "LedgerIntegrityError",
    "error_from_code",
    "Address",
    "Hash256",
    "ZERO_HASH",
    "normalize_address",
    "normalize_hash",
]
