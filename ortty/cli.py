"""Command-line interface for scanning and browsing inscriptions."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import ConfigurationError, load_rpc_config
from .display import open_web, record_summary, record_to_dict, render, write_to_file
from .envelope import EnvelopeScanConfig
from .explore import Explorer, ExploreOptions
from .filter import FilterError, apply_filters, parse_filter
from .inscription import InputNotFoundError, InscriptionId, InscriptionIdError, InscriptionRecord
from .rpc_client import BitcoinRPCClient, RPCError, RPCTransportError
from .scan import ScanError, fetch_inscription, scan
from .script import MalformedScriptError
from .transaction import TransactionFormatError

logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _add_rpc_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to a YAML config file (default: ~/.ortty.yaml)")
    parser.add_argument("--rpc-url", help="Override RPC endpoint URL")
    parser.add_argument("--rpc-host", help="Override RPC host")
    parser.add_argument("--rpc-port", type=int, help="Override RPC port")
    parser.add_argument("--rpc-user", help="Override RPC username")
    parser.add_argument("--rpc-password", help="Override RPC password")
    parser.add_argument("--rpc-cookie", help="Path to the node's .cookie file")


def _add_grammar_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--strict-leading",
        action="store_true",
        help="Expect exactly a signature and OP_CHECKSIG before the envelope",
    )
    parser.add_argument(
        "--no-extra-fields",
        action="store_true",
        help="Require the body to follow the content type immediately",
    )
    parser.add_argument(
        "--single-envelope",
        action="store_true",
        help="Stop after the first envelope in each witness",
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--raw-json",
        action="store_true",
        help="Print JSON inscriptions compactly instead of pretty-printed",
    )
    parser.add_argument(
        "--extract",
        metavar="DIR",
        help="Write inscription payloads to DIR as <inscription-id>.<ext>",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Open each inscription on ordinals.com",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bitcoin inscription scanner")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan", help="Scan a block, transaction or input for inscriptions"
    )
    scan_parser.add_argument("--block", help="Block hash or height")
    scan_parser.add_argument("--tx", help="Transaction id")
    scan_parser.add_argument("--input", type=int, help="Input index within the transaction")
    scan_parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=[],
        help="Only show text, json, brc20, image or html inscriptions (repeatable)",
    )
    scan_parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Emit the scan results as JSON",
    )
    scan_parser.add_argument(
        "--payload",
        action="store_true",
        help="Include the raw payload hex in JSON output",
    )
    _add_output_arguments(scan_parser)
    _add_grammar_arguments(scan_parser)
    _add_rpc_arguments(scan_parser)

    show_parser = subparsers.add_parser(
        "show", help="Print the inscriptions referenced by an inscription id"
    )
    show_parser.add_argument("inscription_id", help="Identifier in <txid>i<input> form")
    _add_output_arguments(show_parser)
    _add_grammar_arguments(show_parser)
    _add_rpc_arguments(show_parser)

    explore_parser = subparsers.add_parser("explore", help="Browse recent blocks interactively")
    explore_parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=[],
        help="Initial filter (repeatable)",
    )
    _add_output_arguments(explore_parser)
    _add_grammar_arguments(explore_parser)
    _add_rpc_arguments(explore_parser)

    return parser


def _rpc_from_args(args: argparse.Namespace) -> BitcoinRPCClient:
    config = load_rpc_config(
        config_path=args.config,
        overrides={
            "endpoint": args.rpc_url,
            "host": args.rpc_host,
            "port": args.rpc_port,
            "user": args.rpc_user,
            "password": args.rpc_password,
            "cookie": args.rpc_cookie,
        },
    )
    return BitcoinRPCClient(config)


def _scan_config_from_args(args: argparse.Namespace) -> EnvelopeScanConfig:
    return EnvelopeScanConfig(
        skip_leading_noise=not args.strict_leading,
        allow_extra_fields=not args.no_extra_fields,
        multiple_per_witness=not args.single_envelope,
    )


def _emit_records(records: Sequence[InscriptionRecord], args: argparse.Namespace) -> None:
    for record in records:
        print(record_summary(record))
        print(render(record, raw_json=args.raw_json))
        print()
        _post_process(record, args)


def _post_process(record: InscriptionRecord, args: argparse.Namespace) -> None:
    if args.extract:
        write_to_file(record, args.extract)
    if args.web:
        open_web(record)


def cmd_scan(args: argparse.Namespace) -> None:
    filters = {parse_filter(name) for name in args.filters}
    rpc = _rpc_from_args(args)
    records = scan(
        rpc,
        block=args.block,
        txid=args.tx,
        input_index=args.input,
        config=_scan_config_from_args(args),
    )
    records = apply_filters(records, filters)

    if args.as_json:
        output: list[dict[str, Any]] = [
            record_to_dict(record, include_payload=args.payload) for record in records
        ]
        print(json.dumps(output, indent=2))
        for record in records:
            _post_process(record, args)
        return

    if not records:
        print("No inscriptions found.")
        return

    _emit_records(records, args)
    print(f"Found {len(records)} inscription(s).")


def cmd_show(args: argparse.Namespace) -> None:
    inscription_id = InscriptionId.parse(args.inscription_id)
    rpc = _rpc_from_args(args)
    records = fetch_inscription(rpc, inscription_id, _scan_config_from_args(args))
    if not records:
        raise CLIError(f"Inscription not found: {inscription_id}")
    _emit_records(records, args)


def cmd_explore(args: argparse.Namespace) -> None:
    options = ExploreOptions(
        filters=frozenset(parse_filter(name) for name in args.filters),
        extract=bool(args.extract),
        extract_dir=Path(args.extract or "."),
        web=args.web,
    )
    explorer = Explorer(
        _rpc_from_args(args),
        options=options,
        scan_config=_scan_config_from_args(args),
        raw_json=args.raw_json,
    )
    explorer.run()


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        if args.command == "scan":
            cmd_scan(args)
        elif args.command == "show":
            cmd_show(args)
        elif args.command == "explore":
            cmd_explore(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    except (
        CLIError,
        ConfigurationError,
        FilterError,
        InputNotFoundError,
        InscriptionIdError,
        MalformedScriptError,
        RPCError,
        RPCTransportError,
        ScanError,
        TransactionFormatError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
