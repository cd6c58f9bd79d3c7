"""
JSON-RPC chain client.

- Contract calls go through `eth_call` against the requested block tag
- Registry names are resolved through the node's registrar contract
  (`getAddress(bytes32 name, string key)` with key "A")
- Single-shot requests: no retries, bounded only by `timeout`
"""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any, List, Optional

import requests
from eth_utils import decode_hex

from servicetx.contracts.abi import (
    REGISTRY_ADDRESS_KEY,
    REGISTRY_GET_ADDRESS,
    registry_name_hash,
)
from servicetx.protocol.enums import BlockId
from servicetx.protocol.errors import InvocationFailureError
from servicetx.protocol.models import Address

from .base import ChainClient

logger = logging.getLogger(__name__)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


class JsonRpcChain(ChainClient):
    """
    ChainClient backed by an Ethereum JSON-RPC endpoint.

    Without a registrar address every registry lookup reports
    "not configured".
    """

    def __init__(
        self,
        url: str,
        registrar: Optional[Address] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._registrar = registrar
        self._timeout = timeout
        self._session = session or requests.Session()
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, settings) -> "JsonRpcChain":
        registrar = (
            Address.from_hex(settings.registrar_address)
            if settings.registrar_address
            else None
        )
        return cls(settings.rpc_url, registrar=registrar, timeout=settings.rpc_timeout)

    # ------------------------------------------------------------------
    # ChainClient
    # ------------------------------------------------------------------
    def registry_address(self, name: str, block: BlockId) -> Optional[Address]:
        if self._registrar is None:
            logger.debug("No registrar configured, cannot resolve %s", name)
            return None

        data = REGISTRY_GET_ADDRESS.encode_call(registry_name_hash(name), REGISTRY_ADDRESS_KEY)
        raw = self.call_contract(block, self._registrar, data)
        address = REGISTRY_GET_ADDRESS.decode_single(raw)
        if address.is_zero:
            return None
        return address

    def call_contract(self, block: BlockId, address: Address, data: bytes) -> bytes:
        result = self._request(
            "eth_call",
            [{"to": address.hex(), "data": "0x" + bytes(data).hex()}, block.value],
        )
        if not isinstance(result, str):
            raise InvocationFailureError(f"eth_call returned non-hex result: {result!r}")
        try:
            return decode_hex(result)
        except ValueError as e:
            raise InvocationFailureError(f"eth_call returned invalid hex: {result!r}") from e

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            response = self._session.post(
                self._url,
                data=_json_dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            decoded = json.loads(response.text)
        except requests.RequestException as e:
            raise InvocationFailureError(f"{method} request to {self._url} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise InvocationFailureError(f"{method} returned malformed JSON: {e}") from e

        if not isinstance(decoded, dict):
            raise InvocationFailureError(f"{method} returned unexpected payload: {decoded!r}")

        err = decoded.get("error")
        if err:
            message = err.get("message", "unknown error") if isinstance(err, dict) else str(err)
            code = err.get("code") if isinstance(err, dict) else None
            raise InvocationFailureError(f"{method} failed ({code}): {message}")

        if "result" not in decoded:
            raise InvocationFailureError(f"{method} response has no result")
        return decoded["result"]
