# servicetx/core/checker.py

"""
Service transaction checker.

Decides whether a zero gas price transaction may enter the pool as a
service transaction, based on two registry-resolved policy contracts:

  1. certifier (`service_transaction_checker`): is the sender allowed to
     send service transactions? Fail-closed: any error is raised.
  2. destination whitelist (`service_destination_whitelist`): may the
     destination receive them? Fail-open: any error means "allowed".

The checker is stateless; the chain capability is passed in on every call.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from servicetx.chain.base import ChainClient
from servicetx.contracts.abi import ACTIVATED, CERTIFIED, WHITELISTED, ContractFunction
from servicetx.protocol.enums import BlockId, WhitelistOutcome
from servicetx.protocol.errors import (
    ConfigurationMissingError,
    InvocationFailureError,
    ServiceTxError,
)
from servicetx.protocol.models import (
    SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME,
    SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME,
    Address,
    Transaction,
)

from .tracing import TraceSink, TraceSpan, now_iso

logger = logging.getLogger("servicetx.txqueue")


class ServiceTransactionChecker:
    def __init__(self, *, trace_sink: Optional[TraceSink] = None) -> None:
        self._trace_sink = trace_sink

    # ===========================================================
    # Public API
    # ===========================================================
    def check(self, client: ChainClient, tx: Transaction) -> bool:
        """Checks if the sender of `tx` may send it as a service transaction."""
        # Only zero gas price transactions claim to be service transactions.
        if not tx.is_zero_gas_price:
            return False
        return self.check_address(client, tx.sender, tx.destination)

    def check_address(self, client: ChainClient, sender: Address, to: Address) -> bool:
        """
        Checks if `sender` may send service transactions to `to`.

        Raises ServiceTxError if the certifier contract is missing or
        misbehaves. Whitelist problems never raise.
        """
        started = now_iso()
        try:
            certified = self._check_certified_address(client, sender)
        except ServiceTxError as e:
            self._trace(sender, to, started, certified=None, error=e)
            raise

        if not certified:
            self._trace(sender, to, started, certified=False, permitted=False)
            return False

        outcome = self._whitelist_outcome(client, to)
        permitted = outcome != WhitelistOutcome.REFUSED
        if not permitted:
            logger.debug(
                "Service destination whitelist contract refuses for %s. "
                "Break service transaction check",
                to,
            )

        self._trace(
            sender, to, started, certified=True, whitelist=outcome, permitted=permitted
        )
        return permitted

    # ===========================================================
    # Certifier
    # ===========================================================
    def _check_certified_address(self, client: ChainClient, sender: Address) -> bool:
        """Calls the certifier contract's `certified(address)`."""
        contract_address = self._resolve(
            client, SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME, "contract is not configured"
        )
        logger.debug("Checking service transaction checker contract from %s", sender)
        return self._call(client, contract_address, CERTIFIED, sender)

    # ===========================================================
    # Destination whitelist
    # ===========================================================
    def _whitelist_outcome(self, client: ChainClient, to: Address) -> WhitelistOutcome:
        try:
            contract_address = self._resolve(
                client,
                SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME,
                "whitelist contract is not configured",
            )
            if not self._check_whitelist_active(client, contract_address):
                return WhitelistOutcome.INACTIVE
            if self._check_whitelist_address_presence(client, contract_address, to):
                return WhitelistOutcome.ALLOWED
            return WhitelistOutcome.REFUSED
        except ServiceTxError as e:
            # The whitelist is optional: unusable means not enforced.
            logger.debug("Service destination whitelist not applied for %s: %s", to, e)
            return WhitelistOutcome.ERROR

    def _check_whitelist_active(self, client: ChainClient, contract_address: Address) -> bool:
        """Calls the whitelist contract's `activated()`."""
        logger.debug("Checking service destination whitelist contract is active")
        return self._call(client, contract_address, ACTIVATED)

    def _check_whitelist_address_presence(
        self, client: ChainClient, contract_address: Address, to: Address
    ) -> bool:
        """Calls the whitelist contract's `whitelisted(address)`."""
        logger.debug("Checking service destination whitelist contract for address %s", to)
        return self._call(client, contract_address, WHITELISTED, to)

    # ===========================================================
    # Chain access
    # ===========================================================
    def _resolve(self, client: ChainClient, name: str, missing_message: str) -> Address:
        try:
            address = client.registry_address(name, BlockId.LATEST)
        except ServiceTxError:
            raise
        except Exception as e:
            raise InvocationFailureError(f"registry lookup of {name} failed: {e}") from e
        if address is None:
            raise ConfigurationMissingError(missing_message, name)
        return address

    def _call(
        self, client: ChainClient, contract_address: Address, function: ContractFunction, *args: Any
    ) -> Any:
        data = function.encode_call(*args)
        try:
            value = client.call_contract(BlockId.LATEST, contract_address, data)
        except ServiceTxError:
            raise
        except Exception as e:
            raise InvocationFailureError(
                f"call to {function.signature} on {contract_address} failed: {e}"
            ) from e
        return function.decode_single(value)

    # ===========================================================
    # Tracing
    # ===========================================================
    def _trace(
        self,
        sender: Address,
        to: Address,
        started: str,
        *,
        certified: Optional[bool],
        whitelist: Optional[WhitelistOutcome] = None,
        permitted: bool = False,
        error: Optional[ServiceTxError] = None,
    ) -> None:
        if self._trace_sink is None:
            return

        self._trace_sink.record(
            TraceSpan(
                name="service_tx.check",
                sender=sender.checksum,
                destination=to.checksum,
                certified=certified,
                permitted=permitted,
                whitelist=whitelist.value if whitelist else None,
                error=str(error) if error is not None else None,
                error_code=error.code.value if error is not None else None,
                started_at=started,
            )
        )
