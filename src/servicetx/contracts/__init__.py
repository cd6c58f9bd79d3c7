from .abi import (
    ACTIVATED,
    CERTIFIED,
    REGISTRY_ADDRESS_KEY,
    REGISTRY_GET_ADDRESS,
    WHITELISTED,
    ContractFunction,
    registry_name_hash,
    split_call,
)

__all__ = [
    "ContractFunction",
    "CERTIFIED",
    "ACTIVATED",
    "WHITELISTED",
    "REGISTRY_GET_ADDRESS",
    "REGISTRY_ADDRESS_KEY",
    "registry_name_hash",
    "split_call",
]
