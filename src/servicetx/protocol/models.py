"""
Core data model for service transaction checks.

Models:
- Address: 20-byte account / contract identifier
- Action: contract creation or call to an address
- Transaction: the subset of a signed transaction the gate looks at
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_utils import to_checksum_address

from .enums import ActionKind

ADDRESS_LENGTH = 20

SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME = "service_transaction_checker"
SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME = "service_destination_whitelist"


@dataclass(frozen=True)
class Address:
    """
    Opaque 20-byte address.

    Equality and hashing are by raw bytes, so addresses parsed from
    differently-cased hex strings compare equal.
    """

    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bytes, bytearray)):
            raise TypeError(f"Address expects bytes, got {type(self.value).__name__}")
        if len(self.value) != ADDRESS_LENGTH:
            raise ValueError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.value)}"
            )
        object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def from_hex(cls, text: str) -> "Address":
        raw = text[2:] if text[:2].lower() == "0x" else text
        if len(raw) != ADDRESS_LENGTH * 2:
            raise ValueError(f"Invalid address length: {text!r}")
        try:
            return cls(bytes.fromhex(raw))
        except ValueError as e:
            raise ValueError(f"Invalid address: {text!r}") from e

    def hex(self) -> str:
        return "0x" + self.value.hex()

    @property
    def checksum(self) -> str:
        return to_checksum_address(self.hex())

    @property
    def is_zero(self) -> bool:
        return self.value == ZERO_ADDRESS.value

    def __str__(self) -> str:
        return self.checksum


ZERO_ADDRESS = Address(b"\x00" * ADDRESS_LENGTH)


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    to: Optional[Address] = None

    def __post_init__(self) -> None:
        if self.kind == ActionKind.CALL and self.to is None:
            raise ValueError("call action requires a target address")
        if self.kind == ActionKind.CREATE and self.to is not None:
            raise ValueError("create action must not carry a target address")

    @classmethod
    def create(cls) -> "Action":
        return cls(ActionKind.CREATE)

    @classmethod
    def call(cls, to: Address) -> "Action":
        return cls(ActionKind.CALL, to)


@dataclass(frozen=True)
class Transaction:
    """
    Transaction fields consulted by the service transaction gate.

    Attributes:
        sender: Recovered sender address
        gas_price: Gas price in wei (zero for service transactions)
        action: Contract creation or call
    """

    sender: Address
    gas_price: int
    action: Action

    def __post_init__(self) -> None:
        if self.gas_price < 0:
            raise ValueError("gas_price must be non-negative")

    @property
    def is_zero_gas_price(self) -> bool:
        return self.gas_price == 0

    @property
    def destination(self) -> Address:
        """Call target, or the zero address for contract creation."""
        if self.action.kind == ActionKind.CREATE:
            return ZERO_ADDRESS
        return self.action.to
