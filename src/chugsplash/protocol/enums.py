from enum import Enum


class ErrorCode(str, Enum):
    NOT_OWNER = "not_owner"
    BUNDLE_ALREADY_ACTIVE = "bundle_already_active"
    NO_ACTIVE_BUNDLE = "no_active_bundle"
    INVALID_PROOF = "invalid_proof"
    ALREADY_EXECUTED = "already_executed"
    VALIDATION_ERROR = "validation_error"
    LEDGER_INTEGRITY = "ledger_integrity"
    INTERNAL_ERROR = "internal_error"


class ActionType(int, Enum):
    """Type discriminant of a bundle action; the value is the encoding tag byte."""

    SET_CODE = 0
    SET_STORAGE = 1
