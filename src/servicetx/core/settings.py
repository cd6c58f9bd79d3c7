"""
Central configuration for servicetx.

Typed configuration read from environment variables (12-factor style)
using pydantic-settings.

Usage:

    from servicetx.core.settings import get_settings

    settings = get_settings()
    chain = JsonRpcChain.from_settings(settings.chain)

Policy contract registry names are fixed constants, not configuration.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from servicetx.protocol.models import Address


def normalize_log_level(value: Optional[str]) -> str:
    """Upper-cased level name; unknown names fall back to INFO."""
    v = (value or "INFO").upper()
    if v == "WARN":
        v = "WARNING"
    if not isinstance(logging.getLevelName(v), int):
        return "INFO"
    return v


class ChainSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True)

    rpc_url: str = Field(
        default="http://127.0.0.1:8545",
        validation_alias="SERVICETX_RPC_URL",
        description="JSON-RPC endpoint of the node to query.",
    )
    registrar_address: Optional[str] = Field(
        default=None,
        validation_alias="SERVICETX_REGISTRAR_ADDRESS",
        description="Address of the registrar contract used to resolve policy contracts.",
    )
    rpc_timeout: float = Field(
        default=10.0,
        validation_alias="SERVICETX_RPC_TIMEOUT",
        description="Per-request timeout in seconds.",
    )

    @field_validator("registrar_address")
    @classmethod
    def _validate_registrar(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        Address.from_hex(v)
        return v

    @field_validator("rpc_timeout")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("SERVICETX_RPC_TIMEOUT must be positive")
        return v


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True)

    log_level: str = Field(
        default="INFO",
        validation_alias="SERVICETX_LOG_LEVEL",
        description="Root log level (DEBUG/INFO/WARNING/ERROR).",
    )
    trace_sink: str = Field(
        default="none",
        validation_alias="SERVICETX_TRACE_SINK",
        description="Trace sink backend: 'none' (default) or 'memory'.",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return normalize_log_level(v)

    @field_validator("trace_sink")
    @classmethod
    def _normalize_trace_sink(cls, v: str) -> str:
        v = (v or "none").lower()
        if v not in ("none", "memory"):
            return "none"
        return v


class ServiceTxSettings(BaseSettings):
    """
    Root configuration object.

    Aggregates:
      - Chain (RPC endpoint, registrar)
      - Runtime (logging, tracing)
    """

    chain: ChainSettings = Field(default_factory=ChainSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)


@lru_cache(maxsize=1)
def get_settings() -> ServiceTxSettings:
    return ServiceTxSettings()
