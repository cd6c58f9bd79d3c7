from .base import ChainClient
from .inprocess import (
    ChainCall,
    InProcessChain,
    RawReturn,
    certifier_handlers,
    whitelist_handlers,
)
from .jsonrpc import JsonRpcChain

__all__ = [
    "ChainClient",
    "ChainCall",
    "InProcessChain",
    "RawReturn",
    "certifier_handlers",
    "whitelist_handlers",
    "JsonRpcChain",
]
