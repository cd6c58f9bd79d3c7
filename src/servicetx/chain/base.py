from __future__ import annotations

"""
Chain-query capability consumed by the service transaction gate.

The gate never talks to a node directly. It is handed a ChainClient at
call time and uses exactly two operations:

    registry_address(name, block) → Address | None
    call_contract(block, address, data) → bytes

ChainClients DO NOT:
  - encode or decode ABI payloads (contracts layer does that)
  - apply fail-open / fail-closed policy (gate does that)
  - retry or cache

Implementations must be safe for concurrent read access if a gate is
shared between threads.
"""

from abc import ABC, abstractmethod
from typing import Optional

from servicetx.protocol.enums import BlockId
from servicetx.protocol.models import Address


class ChainClient(ABC):
    @abstractmethod
    def registry_address(self, name: str, block: BlockId) -> Optional[Address]:
        """
        Resolve a named contract through the on-chain registry.

        Returns None when the registry has no entry for `name`.
        """
        raise NotImplementedError

    @abstractmethod
    def call_contract(self, block: BlockId, address: Address, data: bytes) -> bytes:
        """
        Execute a read-only call against `address` at `block` and return the
        raw output bytes. Raises on failure.
        """
        raise NotImplementedError
