"""
Tests for the service transaction checker.

Test coverage:
1. Gas price short-circuit (no chain queries)
2. Certifier path is fail-closed (errors propagate, whitelist untouched)
3. Whitelist path is fail-open (missing / failing / inactive → permitted)
4. Explicit whitelist refusal
5. Contract creation uses the zero address as destination
6. No caching between calls
7. Tracing and logging of decisions
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from servicetx.chain.inprocess import (
    InProcessChain,
    RawReturn,
    certifier_handlers,
    whitelist_handlers,
)
from servicetx.contracts.abi import ACTIVATED, CERTIFIED, WHITELISTED
from servicetx.core.checker import ServiceTransactionChecker
from servicetx.core.tracing import InMemoryTraceSink
from servicetx.protocol.enums import ErrorCode
from servicetx.protocol.errors import (
    ConfigurationMissingError,
    DecodeFailureError,
    InvocationFailureError,
    ServiceTxError,
)
from servicetx.protocol.models import (
    SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME,
    SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME,
    ZERO_ADDRESS,
    Action,
    Address,
    Transaction,
)

CERTIFIER = Address.from_hex("0x" + "11" * 20)
WHITELIST = Address.from_hex("0x" + "22" * 20)
SENDER = Address.from_hex("0x" + "aa" * 20)
DEST = Address.from_hex("0x" + "bb" * 20)
STRANGER = Address.from_hex("0x" + "cc" * 20)


# ===========================================================================
# Test fixtures
# ===========================================================================


def make_chain(
    certified=(SENDER,),
    whitelisted=(DEST,),
    active=True,
    with_certifier=True,
    with_whitelist=True,
):
    chain = InProcessChain()
    if with_certifier:
        chain.register(SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME, CERTIFIER)
        chain.deploy(CERTIFIER, certifier_handlers(set(certified)))
    if with_whitelist:
        chain.register(SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME, WHITELIST)
        chain.deploy(WHITELIST, whitelist_handlers(set(whitelisted), active=active))
    return chain


def whitelist_queries(chain):
    return chain.lookups_of(SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME) + sum(
        1 for c in chain.calls if c.address == WHITELIST
    )


@pytest.fixture
def checker():
    return ServiceTransactionChecker()


def _boom(*args):
    raise RuntimeError("node unavailable")


# ===========================================================================
# 1. Gas price
# ===========================================================================


class TestGasPrice:
    def test_non_zero_gas_price_is_not_service_transaction(self, checker):
        """Paid transactions are rejected without touching the chain."""
        chain = make_chain()
        tx = Transaction(sender=SENDER, gas_price=5, action=Action.call(DEST))

        assert checker.check(chain, tx) is False
        assert chain.calls == []

    def test_non_zero_gas_price_ignores_broken_certifier(self, checker):
        chain = make_chain(with_certifier=False)
        tx = Transaction(sender=SENDER, gas_price=1, action=Action.create())

        assert checker.check(chain, tx) is False
        assert chain.calls == []

    def test_zero_gas_price_is_checked(self, checker):
        chain = make_chain()
        tx = Transaction(sender=SENDER, gas_price=0, action=Action.call(DEST))

        assert checker.check(chain, tx) is True
        assert chain.calls_to(CERTIFIED) == 1


# ===========================================================================
# 2. Certifier (fail-closed)
# ===========================================================================


class TestCertifier:
    def test_missing_certifier_raises_configuration_missing(self, checker):
        """Zero price contract creation with no certifier registered."""
        chain = make_chain(with_certifier=False)
        tx = Transaction(sender=SENDER, gas_price=0, action=Action.create())

        with pytest.raises(ConfigurationMissingError) as exc_info:
            checker.check(chain, tx)

        assert exc_info.value.code == ErrorCode.CONFIGURATION_MISSING
        assert exc_info.value.contract_name == SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME
        assert "contract is not configured" in str(exc_info.value)
        assert whitelist_queries(chain) == 0

    def test_certifier_call_failure_propagates(self, checker):
        chain = make_chain()
        chain.deploy(CERTIFIER, {CERTIFIED: _boom})

        with pytest.raises(InvocationFailureError) as exc_info:
            checker.check_address(chain, SENDER, DEST)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert whitelist_queries(chain) == 0

    def test_certifier_decode_failure_propagates(self, checker):
        chain = make_chain()
        chain.deploy(CERTIFIER, {CERTIFIED: lambda sender: RawReturn(b"\x01")})

        with pytest.raises(DecodeFailureError) as exc_info:
            checker.check_address(chain, SENDER, DEST)

        assert exc_info.value.function == "certified(address)"
        assert whitelist_queries(chain) == 0

    def test_certifier_address_without_code_is_decode_failure(self, checker):
        """A registry entry pointing at an empty account returns no data."""
        chain = InProcessChain({SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME: CERTIFIER})

        with pytest.raises(DecodeFailureError):
            checker.check_address(chain, SENDER, DEST)

    def test_registry_failure_is_invocation_failure(self, checker):
        class BrokenRegistry(InProcessChain):
            def registry_address(self, name, block):
                raise ConnectionError("registry down")

        with pytest.raises(InvocationFailureError) as exc_info:
            checker.check_address(BrokenRegistry(), SENDER, DEST)

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_uncertified_sender_skips_whitelist(self, checker):
        chain = make_chain(certified=())

        assert checker.check_address(chain, SENDER, DEST) is False
        assert chain.calls_to(CERTIFIED) == 1
        assert whitelist_queries(chain) == 0

    def test_certified_is_queried_with_sender(self, checker):
        seen = []

        def certified(sender):
            seen.append(sender)
            return True

        chain = make_chain()
        chain.deploy(CERTIFIER, {CERTIFIED: certified})

        checker.check_address(chain, SENDER, DEST)
        assert seen == [SENDER]


# ===========================================================================
# 3. Whitelist (fail-open)
# ===========================================================================


class TestWhitelistFailOpen:
    def test_missing_whitelist_permits(self, checker):
        chain = make_chain(with_whitelist=False)

        assert checker.check_address(chain, SENDER, STRANGER) is True
        assert chain.lookups_of(SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME) == 1

    def test_inactive_whitelist_permits(self, checker):
        chain = make_chain(whitelisted=(), active=False)

        assert checker.check_address(chain, SENDER, STRANGER) is True
        assert chain.calls_to(ACTIVATED) == 1
        assert chain.calls_to(WHITELISTED) == 0

    def test_activated_failure_permits(self, checker):
        chain = make_chain()
        chain.deploy(WHITELIST, {ACTIVATED: _boom, WHITELISTED: lambda to: False})

        assert checker.check_address(chain, SENDER, STRANGER) is True
        assert chain.calls_to(WHITELISTED) == 0

    def test_presence_failure_permits(self, checker):
        chain = make_chain()
        chain.deploy(WHITELIST, {ACTIVATED: lambda: True, WHITELISTED: _boom})

        assert checker.check_address(chain, SENDER, STRANGER) is True

    def test_presence_decode_failure_permits(self, checker):
        chain = make_chain()
        chain.deploy(
            WHITELIST,
            {ACTIVATED: lambda: True, WHITELISTED: lambda to: RawReturn(b"")},
        )

        assert checker.check_address(chain, SENDER, STRANGER) is True

    def test_whitelist_without_code_permits(self, checker):
        chain = make_chain(with_whitelist=False)
        chain.register(SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME, WHITELIST)

        assert checker.check_address(chain, SENDER, STRANGER) is True

    def test_whitelist_registry_failure_permits(self, checker):
        class FlakyWhitelistRegistry(InProcessChain):
            def registry_address(self, name, block):
                if name == SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME:
                    raise TimeoutError("timed out")
                return super().registry_address(name, block)

        chain = FlakyWhitelistRegistry({SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME: CERTIFIER})
        chain.deploy(CERTIFIER, certifier_handlers({SENDER}))

        assert checker.check_address(chain, SENDER, STRANGER) is True


# ===========================================================================
# 4. Whitelist enforcement
# ===========================================================================


class TestWhitelistEnforcement:
    def test_whitelisted_destination_permits(self, checker):
        chain = make_chain()

        assert checker.check_address(chain, SENDER, DEST) is True
        assert chain.calls_to(WHITELISTED) == 1

    def test_refused_destination_rejects(self, checker):
        """Certified sender, active whitelist, destination not listed."""
        chain = make_chain(whitelisted=())
        tx = Transaction(sender=SENDER, gas_price=0, action=Action.call(DEST))

        assert checker.check(chain, tx) is False

    def test_refusal_is_logged(self, checker, caplog):
        chain = make_chain(whitelisted=())
        caplog.set_level(logging.DEBUG, logger="servicetx.txqueue")

        checker.check_address(chain, SENDER, DEST)

        assert any("refuses for" in r.getMessage() for r in caplog.records)
        assert not any("not applied" in r.getMessage() for r in caplog.records)

    def test_fail_open_is_logged_differently(self, checker, caplog):
        chain = make_chain(with_whitelist=False)
        caplog.set_level(logging.DEBUG, logger="servicetx.txqueue")

        checker.check_address(chain, SENDER, DEST)

        messages = [r.getMessage() for r in caplog.records]
        assert any("whitelist contract is not configured" in m for m in messages)
        assert not any("refuses for" in m for m in messages)


# ===========================================================================
# 5. Destination resolution
# ===========================================================================


class TestDestination:
    def test_create_checks_zero_address(self, checker):
        seen = []

        def whitelisted(to):
            seen.append(to)
            return True

        chain = make_chain()
        chain.deploy(WHITELIST, {ACTIVATED: lambda: True, WHITELISTED: whitelisted})
        tx = Transaction(sender=SENDER, gas_price=0, action=Action.create())

        assert checker.check(chain, tx) is True
        assert seen == [ZERO_ADDRESS]

    def test_create_refused_when_zero_address_not_listed(self, checker):
        chain = make_chain(whitelisted=(DEST,))
        tx = Transaction(sender=SENDER, gas_price=0, action=Action.create())

        assert checker.check(chain, tx) is False


# ===========================================================================
# 6. No caching
# ===========================================================================


class TestNoCaching:
    def test_policy_changes_are_seen_immediately(self, checker):
        certified = {SENDER}
        members = {DEST}
        state = {"active": True}

        chain = InProcessChain()
        chain.register(SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME, CERTIFIER)
        chain.register(SERVICE_DESTINATION_WHITELIST_REGISTRY_NAME, WHITELIST)
        chain.deploy(CERTIFIER, certifier_handlers(certified))
        chain.deploy(WHITELIST, whitelist_handlers(members, active=lambda: state["active"]))

        assert checker.check_address(chain, SENDER, STRANGER) is False

        state["active"] = False
        assert checker.check_address(chain, SENDER, STRANGER) is True

        certified.discard(SENDER)
        assert checker.check_address(chain, SENDER, STRANGER) is False

        assert chain.lookups_of(SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME) == 3

    def test_unregistering_certifier_is_seen_immediately(self, checker):
        chain = make_chain()
        assert checker.check_address(chain, SENDER, DEST) is True

        chain.unregister(SERVICE_TRANSACTION_CONTRACT_REGISTRY_NAME)
        with pytest.raises(ServiceTxError):
            checker.check_address(chain, SENDER, DEST)

    def test_concurrent_checks_share_one_checker(self, checker):
        chain = make_chain(certified=(SENDER,), whitelisted=(DEST,))
        pairs = [(SENDER, DEST), (SENDER, STRANGER), (STRANGER, DEST)] * 20
        expected = [True, False, False] * 20

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda p: checker.check_address(chain, *p), pairs))

        assert results == expected
        assert chain.calls_to(CERTIFIED) == len(pairs)


# ===========================================================================
# 7. Tracing
# ===========================================================================


class TestTracing:
    def test_no_sink_by_default(self):
        chain = make_chain()
        assert ServiceTransactionChecker().check_address(chain, SENDER, DEST) is True

    def test_records_whitelist_outcomes(self):
        sink = InMemoryTraceSink()
        checker = ServiceTransactionChecker(trace_sink=sink)

        checker.check_address(make_chain(), SENDER, DEST)
        checker.check_address(make_chain(whitelisted=()), SENDER, DEST)
        checker.check_address(make_chain(active=False), SENDER, DEST)
        checker.check_address(make_chain(with_whitelist=False), SENDER, DEST)

        spans = sink.get_spans()
        assert [s.whitelist for s in spans] == ["allowed", "refused", "inactive", "error"]
        assert [s.permitted for s in spans] == [True, False, True, True]
        assert all(s.name == "service_tx.check" for s in spans)
        assert spans[0].sender == SENDER.checksum
        assert spans[0].destination == DEST.checksum

    def test_records_uncertified_sender(self):
        sink = InMemoryTraceSink()
        checker = ServiceTransactionChecker(trace_sink=sink)

        checker.check_address(make_chain(certified=()), SENDER, DEST)

        (span,) = sink.get_spans()
        assert span.certified is False
        assert span.whitelist is None
        assert span.permitted is False

    def test_records_certifier_error(self):
        sink = InMemoryTraceSink()
        checker = ServiceTransactionChecker(trace_sink=sink)

        with pytest.raises(ConfigurationMissingError):
            checker.check_address(make_chain(with_certifier=False), SENDER, DEST)

        (span,) = sink.get_spans()
        assert span.error_code == "configuration_missing"
        assert span.certified is None
        assert "not configured" in span.error
        assert span.permitted is False

    def test_gas_price_short_circuit_is_not_traced(self):
        sink = InMemoryTraceSink()
        checker = ServiceTransactionChecker(trace_sink=sink)
        tx = Transaction(sender=SENDER, gas_price=10, action=Action.call(DEST))

        checker.check(make_chain(), tx)
        assert sink.get_spans() == []
