from typing import Optional

from .enums import ErrorCode


class ServiceTxError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class ConfigurationMissingError(ServiceTxError):
    """Raised when the registry has no entry for a policy contract."""

    def __init__(self, message: str, contract_name: str):
        super().__init__(message, ErrorCode.CONFIGURATION_MISSING)
        self.contract_name = contract_name


class InvocationFailureError(ServiceTxError):
    """Raised when a registry lookup or contract call fails on the chain side."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVOCATION_FAILURE)


class DecodeFailureError(ServiceTxError):
    """Raised when returned bytes do not match the expected ABI shape."""

    def __init__(self, message: str, function: str):
        super().__init__(message, ErrorCode.DECODE_FAILURE)
        self.function = function
