"""
In-process chain for tests and local tooling.

Holds a name → address registry and a set of "deployed" contracts whose
functions are plain Python callables. Every query is appended to
`calls`, so tests can assert exactly which lookups and invocations a
check performed.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from eth_abi import decode, encode

from servicetx.contracts.abi import (
    ACTIVATED,
    CERTIFIED,
    WHITELISTED,
    ContractFunction,
    split_call,
)
from servicetx.protocol.enums import BlockId
from servicetx.protocol.errors import InvocationFailureError
from servicetx.protocol.models import Address

from .base import ChainClient


@dataclass(frozen=True)
class RawReturn:
    """Handler result returned to the caller as-is, bypassing ABI encoding."""

    data: bytes


@dataclass(frozen=True)
class ChainCall:
    method: str  # "registry_address" | "call_contract"
    block: BlockId
    name: Optional[str] = None
    address: Optional[Address] = None
    function: Optional[str] = None


Handler = Callable[..., Union[Any, RawReturn]]


class InProcessChain(ChainClient):
    def __init__(self, registry: Optional[Dict[str, Address]] = None) -> None:
        self._registry: Dict[str, Address] = dict(registry or {})
        self._contracts: Dict[Address, Dict[bytes, tuple[ContractFunction, Handler]]] = {}
        self._lock = threading.Lock()
        self.calls: List[ChainCall] = []

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def register(self, name: str, address: Address) -> None:
        self._registry[name] = address

    def unregister(self, name: str) -> None:
        self._registry.pop(name, None)

    def deploy(self, address: Address, handlers: Dict[ContractFunction, Handler]) -> None:
        self._contracts[address] = {fn.selector: (fn, h) for fn, h in handlers.items()}

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------
    def registry_address(self, name: str, block: BlockId) -> Optional[Address]:
        self._record(ChainCall("registry_address", block, name=name))
        return self._registry.get(name)

    def call_contract(self, block: BlockId, address: Address, data: bytes) -> bytes:
        selector, args_data = split_call(data)
        contract = self._contracts.get(address)
        entry = contract.get(selector) if contract else None
        self._record(
            ChainCall(
                "call_contract",
                block,
                address=address,
                function=entry[0].signature if entry else "0x" + selector.hex(),
            )
        )

        if contract is None:
            # Calling an address without code succeeds with empty output.
            return b""
        if entry is None:
            raise InvocationFailureError(f"execution reverted: unknown selector 0x{selector.hex()}")

        fn, handler = entry
        args = []
        if fn.inputs:
            args = [
                Address.from_hex(v) if t == "address" else v
                for t, v in zip(fn.inputs, decode(list(fn.inputs), args_data))
            ]
        result = handler(*args)
        if isinstance(result, RawReturn):
            return result.data
        return encode(list(fn.outputs), [result])

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def calls_to(self, function: ContractFunction) -> int:
        return sum(1 for c in self.calls if c.function == function.signature)

    def lookups_of(self, name: str) -> int:
        return sum(1 for c in self.calls if c.method == "registry_address" and c.name == name)

    def reset_calls(self) -> None:
        with self._lock:
            self.calls.clear()

    def _record(self, call: ChainCall) -> None:
        with self._lock:
            self.calls.append(call)


def certifier_handlers(certified: Set[Address]) -> Dict[ContractFunction, Handler]:
    """Certifier contract answering certified(address) from `certified`."""
    return {CERTIFIED: lambda sender: sender in certified}


def whitelist_handlers(
    whitelisted: Iterable[Address],
    *,
    active: Union[bool, Callable[[], bool]] = True,
) -> Dict[ContractFunction, Handler]:
    """
    Destination whitelist contract.

    `active` may be a callable so tests can flip activation between checks.
    """
    members = whitelisted if isinstance(whitelisted, set) else set(whitelisted)
    is_active = active if callable(active) else (lambda: active)
    return {
        ACTIVATED: is_active,
        WHITELISTED: lambda to: to in members,
    }
