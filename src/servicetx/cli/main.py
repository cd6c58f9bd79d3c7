"""
servicetx CLI
-------------

Commands:
    servicetx check-tx --sender S [--to D] [--gas-price N]
        Check a transaction (no --to means contract creation)
    servicetx check-address --sender S --to D
        Check a sender / destination pair

Exit codes: 0 permitted, 1 not permitted, 2 error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

from servicetx.chain.jsonrpc import JsonRpcChain
from servicetx.core.checker import ServiceTransactionChecker
from servicetx.core.settings import ChainSettings, get_settings, normalize_log_level
from servicetx.core.tracing import InMemoryTraceSink
from servicetx.protocol.errors import ServiceTxError
from servicetx.protocol.models import Action, Address, Transaction

EXIT_PERMITTED = 0
EXIT_NOT_PERMITTED = 1
EXIT_ERROR = 2


def _parse_address(value: str) -> Address:
    try:
        return Address.from_hex(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _chain_settings(args) -> ChainSettings:
    """Environment chain settings with command line flags applied on top."""
    values = get_settings().chain.model_dump()
    overrides = {
        "rpc_url": args.rpc_url,
        "registrar_address": args.registrar,
        "rpc_timeout": args.timeout,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ChainSettings(**values)


def _build_chain(args) -> JsonRpcChain:
    return JsonRpcChain.from_settings(_chain_settings(args))


def _build_checker() -> Tuple[ServiceTransactionChecker, Optional[InMemoryTraceSink]]:
    if get_settings().runtime.trace_sink == "memory":
        sink = InMemoryTraceSink()
        return ServiceTransactionChecker(trace_sink=sink), sink
    return ServiceTransactionChecker(), None


def _report(result: Dict[str, Any], sink: Optional[InMemoryTraceSink], fmt: str) -> None:
    spans = [s.to_dict() for s in sink.get_spans()] if sink is not None else None

    if fmt == "json":
        if spans is not None:
            result = {**result, "trace": spans}
        print(json.dumps(result, indent=2))
        return

    for key, value in result.items():
        print(f"{key + ':':<14} {value}")
    if spans is None:
        return
    print("trace:")
    if not spans:
        print("  (no policy check performed)")
    for span in spans:
        for key, value in span.items():
            print(f"  {key + ':':<14} {value}")


def cmd_check_tx(args) -> int:
    action = Action.call(args.to) if args.to is not None else Action.create()
    tx = Transaction(sender=args.sender, gas_price=args.gas_price, action=action)
    checker, sink = _build_checker()
    permitted = checker.check(_build_chain(args), tx)
    _report(
        {
            "sender": args.sender.checksum,
            "to": tx.destination.checksum,
            "gas_price": tx.gas_price,
            "permitted": permitted,
        },
        sink,
        args.output,
    )
    return EXIT_PERMITTED if permitted else EXIT_NOT_PERMITTED


def cmd_check_address(args) -> int:
    checker, sink = _build_checker()
    permitted = checker.check_address(_build_chain(args), args.sender, args.to)
    _report(
        {"sender": args.sender.checksum, "to": args.to.checksum, "permitted": permitted},
        sink,
        args.output,
    )
    return EXIT_PERMITTED if permitted else EXIT_NOT_PERMITTED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicetx",
        description="Check zero gas price (service) transactions against on-chain policy contracts",
    )
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: SERVICETX_RPC_URL)")
    parser.add_argument("--registrar", help="Registrar contract address")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("--log-level", help="Log level (default: SERVICETX_LOG_LEVEL; unknown names fall back to INFO)")
    parser.add_argument("--output", choices=["table", "json"], default="table")
    sub = parser.add_subparsers(dest="command")

    p_tx = sub.add_parser("check-tx", help="Check a transaction")
    p_tx.add_argument("--sender", required=True, type=_parse_address)
    p_tx.add_argument("--to", type=_parse_address, help="Call target; omit for contract creation")
    p_tx.add_argument("--gas-price", type=int, default=0)
    p_tx.set_defaults(func=cmd_check_tx)

    p_addr = sub.add_parser("check-address", help="Check a sender / destination pair")
    p_addr.add_argument("--sender", required=True, type=_parse_address)
    p_addr.add_argument("--to", required=True, type=_parse_address)
    p_addr.set_defaults(func=cmd_check_address)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        logging.basicConfig(
            level=normalize_log_level(args.log_level or get_settings().runtime.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return args.func(args)
    except ServiceTxError as e:
        print(f"Error ({e.code.value}): {e}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
