from .enums import ActionKind, BlockId, ErrorCode, WhitelistOutcome
from .errors import (
    ConfigurationMissingError,
    DecodeFailureError,
    InvocationFailureError,
    ServiceTxError,
)
from .models import (
    SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME,
    SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME,
    ZERO_ADDRESS,
    Action,
    Address,
    Transaction,
)

__all__ = [
    "ActionKind",
    "BlockId",
    "ErrorCode",
    "WhitelistOutcome",
    "ServiceTxError",
    "ConfigurationMissingError",
    "InvocationFailureError",
    "DecodeFailureError",
    "Address",
    "Action",
    "Transaction",
    "ZERO_ADDRESS",
    "SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME",
    "SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME",
]
