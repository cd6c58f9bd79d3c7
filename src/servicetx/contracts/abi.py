"""
Minimal ABI layer for the policy contracts consulted by the gate.

Each ContractFunction knows its canonical signature, its 4-byte selector
and how to encode a call / decode the returned bytes. Encoding and
decoding are delegated to eth-abi; selectors and registry keys are keccak
hashes computed by eth-utils.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, keccak

from ..protocol.errors import DecodeFailureError
from ..protocol.models import Address

SELECTOR_LENGTH = 4


@dataclass(frozen=True)
class ContractFunction:
    name: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, *args: Any) -> bytes:
        if len(args) != len(self.inputs):
            raise TypeError(
                f"{self.signature} takes {len(self.inputs)} argument(s), got {len(args)}"
            )
        values = [a.checksum if isinstance(a, Address) else a for a in args]
        if not self.inputs:
            return self.selector
        return self.selector + encode(list(self.inputs), values)

    def decode_output(self, data: bytes) -> Tuple[Any, ...]:
        try:
            values = decode(list(self.outputs), bytes(data))
        except DecodingError as e:
            raise DecodeFailureError(
                f"Cannot decode output of {self.signature}: {e}", self.signature
            ) from e
        return tuple(
            Address.from_hex(v) if t == "address" else v
            for t, v in zip(self.outputs, values)
        )

    def decode_single(self, data: bytes) -> Any:
        return self.decode_output(data)[0]


def split_call(data: bytes) -> Tuple[bytes, bytes]:
    """Split encoded call data into (selector, encoded arguments)."""
    return bytes(data[:SELECTOR_LENGTH]), bytes(data[SELECTOR_LENGTH:])


def registry_name_hash(name: str) -> bytes:
    """Registrar key for a contract name: keccak256 of its UTF-8 bytes."""
    return keccak(text=name)


# Certifier contract
CERTIFIED = ContractFunction("certified", ("address",), ("bool",))

# Destination whitelist contract
ACTIVATED = ContractFunction("activated", (), ("bool",))
WHITELISTED = ContractFunction("whitelisted", ("address",), ("bool",))

# Registrar contract
REGISTRY_GET_ADDRESS = ContractFunction("getAddress", ("bytes32", "string"), ("address",))
REGISTRY_ADDRESS_KEY = "A"
