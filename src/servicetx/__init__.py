from .core.checker import ServiceTransactionChecker
from .core.tracing import InMemoryTraceSink, TraceSink
from .chain import ChainClient, InProcessChain, JsonRpcChain
from .protocol import (
    ZERO_ADDRESS,
    Action,
    ActionKind,
    Address,
    BlockId,
    ConfigurationMissingError,
    DecodeFailureError,
    ErrorCode,
    InvocationFailureError,
    ServiceTxError,
    Transaction,
)

__all__ = [
    "ServiceTransactionChecker",
    "InMemoryTraceSink",
    "TraceSink",
    "ChainClient",
    "InProcessChain",
    "JsonRpcChain",
    "Address",
    "Action",
    "ActionKind",
    "BlockId",
    "Transaction",
    "ZERO_ADDRESS",
    "ErrorCode",
    "ServiceTxError",
    "ConfigurationMissingError",
    "InvocationFailureError",
    "DecodeFailureError",
]
