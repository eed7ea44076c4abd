"""Command-line interface for ordview.

Each subcommand materializes inscription views from the local confirmed index
(and, for ``mempool``, from a fresh snapshot of the node's mempool) and prints
them as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import string
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import (
    ORIGINAL_OWNER_KEYS,
    ConfigurationError,
    ViewConfig,
    load_rpc_config,
    load_view_config,
    set_default_config_path,
)
from .errors import ViewError
from .model import InscriptionId
from .ordinals import (
    ConfirmedInscriptionAssembler,
    InscriptionMaterializer,
    MempoolIndex,
    MempoolInscriptionAssembler,
    SQLiteInscriptionIndex,
)
from .ordinals.materializer import BlockRef
from .rpc_client import BitcoinRPCClient, RPCError, RPCTransportError, format_rpc_hint

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inscription views over a confirmed index and the mempool")
    parser.add_argument("--config", default=None, help="Path to an ordview YAML config file")
    parser.add_argument("--index-path", default=None, help="SQLite confirmed index to read from")
    parser.add_argument("--chain", default=None, help="mainnet, testnet, signet, or regtest")
    parser.add_argument(
        "--original-owner-key",
        choices=ORIGINAL_OWNER_KEYS,
        default=None,
        help="Which genesis output identifies the original owner",
    )
    parser.add_argument(
        "--no-rpc-fallback",
        action="store_true",
        help="Never ask the node for transactions missing from the index",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inscription_parser = subparsers.add_parser("inscription", help="Show one inscription by id")
    inscription_parser.add_argument("inscription_id", help="Inscription id (<txid>i<index>)")

    number_parser = subparsers.add_parser("inscription-number", help="Show one inscription by number")
    number_parser.add_argument("number", type=int)

    range_parser = subparsers.add_parser("inscriptions", help="Show inscriptions numbered start..=end")
    range_parser.add_argument("start", type=int)
    range_parser.add_argument("end", type=int)

    subparsers.add_parser("latest-inscription", help="Show the highest-numbered inscription")

    block_parser = subparsers.add_parser("block-inscriptions", help="Show the inscriptions carried by a block")
    block_parser.add_argument("block", help="Block height or hash")
    block_parser.add_argument("--start", type=int, default=None, help="First inscription of the page")
    block_parser.add_argument("--count", type=int, default=None, help="Number of inscriptions in the page")

    count_parser = subparsers.add_parser("block-inscription-count", help="Count the inscriptions in a block")
    count_parser.add_argument("block", help="Block height or hash")

    outputs_parser = subparsers.add_parser("block-outputs", help="List inscribed outputs of a block")
    outputs_parser.add_argument("block", help="Block height or hash")

    ids_parser = subparsers.add_parser("block-inscription-ids", help="List inscription ids of a block")
    ids_parser.add_argument("block", help="Block height or hash")
    ids_parser.add_argument("--limit", type=int, default=100)
    ids_parser.add_argument("--by-transaction", action="store_true", help="Group ids by genesis transaction")

    subparsers.add_parser("latest-block", help="Show the latest indexed block")
    subparsers.add_parser("latest-block-height", help="Show the latest indexed block height")

    mempool_parser = subparsers.add_parser("mempool", help="Snapshot the node mempool and list inscriptions")
    mempool_parser.add_argument("--inscription", default=None, help="Only show this inscription id")

    return parser


def _parse_block_ref(raw: str) -> BlockRef:
    value = raw.strip()
    if value.isdigit():
        return int(value)
    if len(value) != 64 or any(char not in string.hexdigits for char in value):
        raise CLIError(f"expected a block height or 64-character hex hash, got: {raw}")
    return value.lower()


def _parse_inscription_id(raw: str) -> InscriptionId:
    try:
        return InscriptionId.parse(raw)
    except ValueError as exc:
        raise CLIError(str(exc)) from exc


def _view_config(args: argparse.Namespace) -> ViewConfig:
    overrides = {
        "chain": args.chain,
        "index_path": args.index_path,
        "original_owner_key": args.original_owner_key,
    }
    return load_view_config(overrides={k: v for k, v in overrides.items() if v is not None})


def _rpc_or_none(args: argparse.Namespace) -> BitcoinRPCClient | None:
    if args.no_rpc_fallback:
        return None
    try:
        return BitcoinRPCClient(load_rpc_config())
    except ConfigurationError as exc:
        logger.debug("Node fallback disabled: %s", exc)
        return None


def _open_index(view_config: ViewConfig) -> SQLiteInscriptionIndex:
    path = view_config.index_path or SQLiteInscriptionIndex.DEFAULT_DB_PATH
    if not Path(path).exists():
        raise CLIError(f"confirmed index not found at {path}; pass --index-path or set ORDVIEW_INDEX_PATH")
    return SQLiteInscriptionIndex(path)


def _materializer(args: argparse.Namespace) -> InscriptionMaterializer:
    view_config = _view_config(args)
    index = _open_index(view_config)
    assembler = ConfirmedInscriptionAssembler(
        index,
        chain=view_config.chain,
        rpc=_rpc_or_none(args),
        original_owner_key=view_config.original_owner_key,
    )
    return InscriptionMaterializer(index, assembler)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _error_message(exc: Exception) -> str:
    rpc_error = exc if isinstance(exc, RPCError) else exc.__cause__
    hint = format_rpc_hint(rpc_error) if isinstance(rpc_error, RPCError) else None
    hint_suffix = f"\nHint: {hint}" if hint else ""
    return f"error: {exc}{hint_suffix}\n"


def cmd_block_inscriptions(args: argparse.Namespace) -> None:
    materializer = _materializer(args)
    block_ref = _parse_block_ref(args.block)
    if args.start is None and args.count is None:
        views = materializer.inscriptions_for_block(block_ref)
    else:
        if args.start is None or args.count is None:
            raise CLIError("--start and --count must be given together")
        views = materializer.paginated_inscriptions_for_block(block_ref, args.start, args.count)
    _emit([view.to_dict() for view in views])


def cmd_block_inscription_ids(args: argparse.Namespace) -> None:
    materializer = _materializer(args)
    block_ref = _parse_block_ref(args.block)
    if args.by_transaction:
        _emit(materializer.inscription_ids_by_transaction(block_ref, limit=args.limit))
        return
    _emit(
        [
            {"inscription_id": str(inscription_id), "transaction_id": inscription_id.txid}
            for inscription_id in materializer.inscription_ids_for_block(block_ref, limit=args.limit)
        ]
    )


def cmd_latest_block(args: argparse.Namespace) -> None:
    block = _materializer(args).latest_block()
    _emit(
        {
            "hash": block.hash,
            "height": block.height,
            "transactions": [transaction.to_dict() for transaction in block.transactions],
        }
    )


def cmd_mempool(args: argparse.Namespace) -> None:
    rpc = BitcoinRPCClient(load_rpc_config())
    mempool = MempoolIndex()
    mempool.update(rpc)
    assembler = MempoolInscriptionAssembler(mempool)
    if args.inscription:
        _emit(assembler.assemble(_parse_inscription_id(args.inscription)).to_dict())
        return
    _emit([view.to_dict() for view in assembler.assemble_all()])


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_default_config_path(args.config)
    try:
        if args.command == "inscription":
            view = _materializer(args).inscription_by_id(_parse_inscription_id(args.inscription_id))
            _emit(view.to_dict())
        elif args.command == "inscription-number":
            _emit(_materializer(args).inscription_by_number(args.number).to_dict())
        elif args.command == "inscriptions":
            views = _materializer(args).inscriptions_in_range(args.start, args.end)
            _emit([view.to_dict() for view in views])
        elif args.command == "latest-inscription":
            _emit(_materializer(args).latest_inscription().to_dict())
        elif args.command == "block-inscriptions":
            cmd_block_inscriptions(args)
        elif args.command == "block-inscription-count":
            _emit(_materializer(args).inscription_count_for_block(_parse_block_ref(args.block)))
        elif args.command == "block-outputs":
            outputs = _materializer(args).outputs_for_block(_parse_block_ref(args.block))
            _emit([output.to_dict() for output in outputs])
        elif args.command == "block-inscription-ids":
            cmd_block_inscription_ids(args)
        elif args.command == "latest-block":
            cmd_latest_block(args)
        elif args.command == "latest-block-height":
            _emit(_materializer(args).latest_block_height())
        elif args.command == "mempool":
            cmd_mempool(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (CLIError, ConfigurationError, ViewError, RPCError, RPCTransportError) as exc:
        parser.exit(1, _error_message(exc))
    finally:
        set_default_config_path(None)


if __name__ == "__main__":
    main(sys.argv[1:])
