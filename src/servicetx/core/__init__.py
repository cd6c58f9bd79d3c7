from .checker import ServiceTransactionChecker
from .settings import ChainSettings, RuntimeSettings, ServiceTxSettings, get_settings
from .tracing import InMemoryTraceSink, TraceSink, TraceSpan

__all__ = [
    "ServiceTransactionChecker",
    "ChainSettings",
    "RuntimeSettings",
    "ServiceTxSettings",
    "get_settings",
    "InMemoryTraceSink",
    "TraceSink",
    "TraceSpan",
]
