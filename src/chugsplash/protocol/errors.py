from typing import Dict, Optional, Type

from .enums import ErrorCode


class ChugSplashError(Exception):
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code.value, "message": self.message}


class NotOwnerError(ChugSplashError):
    """Raised when an owner-only operation is called by someone else."""

    code = ErrorCode.NOT_OWNER

    def __init__(self, message: str = "sender is not owner"):
        super().__init__(message)


class BundleAlreadyActiveError(ChugSplashError):
    """Raised when approving while the previous bundle is still running."""

    code = ErrorCode.BUNDLE_ALREADY_ACTIVE

    def __init__(self, message: str = "previous bundle has not yet been fully executed"):
        super().__init__(message)


class NoActiveBundleError(ChugSplashError):
    """Raised when executing or cancelling without an active bundle."""

    code = ErrorCode.NO_ACTIVE_BUNDLE

    def __init__(self, message: str = "there is no active bundle"):
        super().__init__(message)


class InvalidProofError(ChugSplashError):
    code = ErrorCode.INVALID_PROOF

    def __init__(self, message: str = "invalid action proof"):
        super().__init__(message)


class AlreadyExecutedError(ChugSplashError):
    code = ErrorCode.ALREADY_EXECUTED

    def __init__(self, message: str = "action has already been executed"):
        super().__init__(message)


class ValidationError(ChugSplashError):
    """Raised when an address, hash, action or proof is malformed."""

    code = ErrorCode.VALIDATION_ERROR


class LedgerIntegrityError(ChugSplashError):
    """Raised when the ledger journal is corrupt, unsigned or inconsistent."""

    code = ErrorCode.LEDGER_INTEGRITY


_ERRORS_BY_CODE: Dict[ErrorCode, Type[ChugSplashError]] = {
    ErrorCode.NOT_OWNER: NotOwnerError,
    ErrorCode.BUNDLE_ALREADY_ACTIVE: BundleAlreadyActiveError,
    ErrorCode.NO_ACTIVE_BUNDLE: NoActiveBundleError,
    ErrorCode.INVALID_PROOF: InvalidProofError,
    ErrorCode.ALREADY_EXECUTED: AlreadyExecutedError,
    ErrorCode.VALIDATION_ERROR: ValidationError,
    ErrorCode.LEDGER_INTEGRITY: LedgerIntegrityError,
}


def error_from_code(code: str, message: str) -> ChugSplashError:
    """Rebuild a typed error from its wire form (used by remote clients)."""
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return ChugSplashError(message)

    cls = _ERRORS_BY_CODE.get(error_code)
    if cls is None:
        return ChugSplashError(message, error_code)
    return cls(message)
