"""blockanchor CLI — operator commands for the anchoring client.

Usage:
    python -m blockanchor.cli summarize --blocks chain.json --height 100 --period 10
    python -m blockanchor.cli anchor --blocks chain.json --height 100 --env-file .env
    python -m blockanchor.cli anchor --blocks chain.json --height 100 --config anchor.json
    python -m blockanchor.cli watermark --state data/anchor_state.json
    python -m blockanchor.cli watermark --state data/anchor_state.json --set 100
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from blockanchor.anchor.client import AnchorClient
from blockanchor.anchor.payload import build_payload
from blockanchor.anchor.window import summarize
from blockanchor.config import AnchorConfig
from blockanchor.errors import ConfigError
from blockanchor.persistence.anchor_state import AnchorStateStore
from blockanchor.persistence.chain_store import JsonBlockStore


DEFAULT_STATE = Path("data") / "anchor_state.json"


def _load_chain(path: Path) -> JsonBlockStore:
    try:
        return JsonBlockStore.from_file(path)
    except (OSError, ValueError, KeyError) as e:
        raise ConfigError(f"Cannot load blocks from {path}: {e}") from e


def _load_config(args: argparse.Namespace) -> AnchorConfig:
    if args.config is not None:
        return AnchorConfig.from_file(args.config)
    return AnchorConfig.from_env(env_file=args.env_file)


def cmd_summarize(args: argparse.Namespace) -> int:
    """Print the payload that would be anchored for a block."""
    chain = _load_chain(args.blocks)
    block = chain.get_block_by_number(args.height)
    if block is None:
        print(f"Failed: block {args.height} not found", file=sys.stderr)
        return 1

    summary = summarize(block, args.period, chain)
    if summary is None:
        print(
            f"Failed: anchor window of block {args.height} is incomplete",
            file=sys.stderr,
        )
        return 1
    print(json.dumps(build_payload(summary).to_wire(), indent=2))
    return 0


def cmd_anchor(args: argparse.Namespace) -> int:
    """Anchor one block through the periodic entry point."""
    config = _load_config(args)
    chain = _load_chain(args.blocks)
    db = AnchorStateStore(storage_path=args.state)
    block = chain.get_block_by_number(args.height)
    if block is None:
        print(f"Failed: block {args.height} not found", file=sys.stderr)
        return 1

    client = AnchorClient(config, db, chain)
    result = client.anchor_periodic_block(block)
    print(json.dumps(result.to_dict(), indent=2))
    if result.error is not None:
        return 1
    return 0


def cmd_watermark(args: argparse.Namespace) -> int:
    """Read or set the last anchored block number."""
    store = AnchorStateStore(storage_path=args.state)
    if args.set is not None:
        store.write_anchored_block_number(args.set)
    print(store.read_anchored_block_number())
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    """Print the effective configuration with secrets masked."""
    config = _load_config(args)
    print(json.dumps(config.redacted(), indent=2))
    return 0


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--config", type=Path, help="JSON config file")
    group.add_argument(
        "--env-file", type=Path,
        help="dotenv file with ANCHOR_* variables (default: environment only)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockanchor",
        description="blockanchor — periodic block anchoring client",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command")

    # summarize
    p_sum = sub.add_parser("summarize", help="Print the anchor payload for a block")
    p_sum.add_argument("--blocks", type=Path, required=True, help="JSON block file")
    p_sum.add_argument("--height", type=int, required=True, help="Block number")
    p_sum.add_argument("--period", type=int, default=1, help="Anchor period (default: 1)")

    # anchor
    p_anchor = sub.add_parser("anchor", help="Anchor a block if it is due")
    p_anchor.add_argument("--blocks", type=Path, required=True, help="JSON block file")
    p_anchor.add_argument("--height", type=int, required=True, help="Block number")
    p_anchor.add_argument(
        "--state", type=Path, default=DEFAULT_STATE,
        help="Anchor state file (default: data/anchor_state.json)",
    )
    _add_config_args(p_anchor)

    # watermark
    p_wm = sub.add_parser("watermark", help="Read or set the last anchored block number")
    p_wm.add_argument(
        "--state", type=Path, default=DEFAULT_STATE,
        help="Anchor state file (default: data/anchor_state.json)",
    )
    p_wm.add_argument("--set", type=int, help="Block number to record")

    # show-config
    p_cfg = sub.add_parser("show-config", help="Show the effective configuration")
    _add_config_args(p_cfg)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    commands = {
        "summarize": cmd_summarize,
        "anchor": cmd_anchor,
        "watermark": cmd_watermark,
        "show-config": cmd_show_config,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except ValueError as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
