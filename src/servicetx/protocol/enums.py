from enum import Enum


class ErrorCode(str, Enum):
    CONFIGURATION_MISSING = "configuration_missing"
    INVOCATION_FAILURE = "invocation_failure"
    DECODE_FAILURE = "decode_failure"
    INTERNAL_ERROR = "internal_error"


class ActionKind(str, Enum):
    CREATE = "create"
    CALL = "call"


class BlockId(str, Enum):
    """Block references understood by chain clients. The gate only uses LATEST."""

    LATEST = "latest"


class WhitelistOutcome(str, Enum):
    INACTIVE = "inactive"
    ALLOWED = "allowed"
    REFUSED = "refused"
    ERROR = "error"
