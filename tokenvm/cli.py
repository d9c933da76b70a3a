"""Command line client: genesis generation and monitoring setup."""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from os import PathLike
from pathlib import Path
from typing import Sequence

from .codec import id_to_string
from .genesis import CustomAllocation, Genesis, default
from .prometheus import (
    PANEL_LABELS,
    dashboard_panels,
    dashboard_url,
    endpoint_from_uri,
    write_prometheus_config,
)
from .store import CliStore

DEFAULT_DATABASE = ".token-cli"
DEFAULT_GENESIS = "genesis.json"
DEFAULT_PROMETHEUS_FILE = "/tmp/prometheus.yaml"
FILE_MODE = 0o600

ERR_INPUT_EMPTY = "input is empty"
ERR_INVALID_ARGS = "invalid args"
ERR_MISSING_SUBCOMMAND = "must specify a subcommand"
ERR_INDEX_OUT_OF_RANGE = "index out-of-range"
ERR_INSUFFICIENT_BALANCE = "insufficient balance"
ERR_INVALID_CHOICE = "invalid choice"
ERR_NOT_MULTIPLE = "must be a multiple"
ERR_INSUFFICIENT_SUPPLY = "insufficient supply"
ERR_MUST_FILL = "must fill"
ERR_DUPLICATE = "duplicate"
ERR_NO_KEYS = "no available keys"
ERR_NO_CHAINS = "no available chains"
ERR_TX_FAILED = "tx failed"


class CliError(Exception):
    """A command failed."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise CliError(message)


_COMMANDS = {"genesis": ("generate",), "prometheus": ("generate",)}
_VALUE_FLAGS = {
    "--database",
    "--genesis-file",
    "--min-unit-price",
    "--max-block-units",
    "--window-target-units",
    "--window-target-blocks",
    "--prometheus-file",
    "--prometheus-data",
}


def _resolve(token: str, names: Sequence[str]) -> str:
    if token in names:
        return token
    matches = [name for name in names if name.startswith(token)]
    return matches[0] if len(matches) == 1 else token


def _expand_prefixes(argv: Sequence[str]) -> list[str]:
    """Replace unique command prefixes with the full command names."""
    out: list[str] = []
    names: Sequence[str] = tuple(_COMMANDS)
    top: str | None = None
    skip = False
    for token in argv:
        if skip:
            out.append(token)
            skip = False
            continue
        if token.startswith("-"):
            skip = token in _VALUE_FLAGS
            out.append(token)
            continue
        if names:
            token = _resolve(token, names)
            if top is None:
                top = token
                names = _COMMANDS.get(token, ())
            else:
                names = ()
        out.append(token)
    return out


def _write_private(path: str | PathLike[str], data: bytes) -> None:
    fd = os.open(os.fspath(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)


def generate_genesis(
    allocations_path: str | PathLike[str],
    genesis_path: str | PathLike[str],
    min_unit_price: int = -1,
    max_block_units: int = -1,
    window_target_units: int = -1,
    window_target_blocks: int = -1,
) -> Genesis:
    """Write a default genesis with custom allocations; negative overrides are ignored."""
    genesis = default()
    if min_unit_price >= 0:
        genesis.min_unit_price = min_unit_price
    if max_block_units >= 0:
        genesis.max_block_units = max_block_units
    if window_target_units >= 0:
        genesis.window_target_units = window_target_units
    if window_target_blocks >= 0:
        genesis.window_target_blocks = window_target_blocks

    allocations = json.loads(Path(allocations_path).read_bytes())
    if allocations is None:
        allocations = []
    if not isinstance(allocations, list):
        raise ValueError("allocations must be a JSON list")
    genesis.custom_allocation = [
        CustomAllocation.from_json(entry) for entry in allocations if entry is not None
    ]
    _write_private(genesis_path, genesis.to_json().encode())
    return genesis


def _prompt_choice(label: str, limit: int) -> int:
    while True:
        try:
            raw = input(f"{label}: ").strip()
        except EOFError as exc:
            raise CliError("input aborted") from exc
        if not raw:
            print(ERR_INPUT_EMPTY)
            continue
        try:
            index = int(raw)
        except ValueError:
            print(f"invalid number {raw!r}")
            continue
        if not 0 <= index < limit:
            print(ERR_INDEX_OUT_OF_RANGE)
            continue
        return index


def _prompt_chain(
    store: CliStore, label: str, excluded: set[bytes] | None = None
) -> tuple[bytes, list[str]]:
    chains = store.get_chains()
    excluded = excluded or set()
    filtered = [cid for cid in chains if cid not in excluded]
    skipped = [id_to_string(cid) for cid in chains if cid in excluded]
    if not filtered:
        raise CliError(ERR_NO_CHAINS)
    print(f"available chains: {len(filtered)} excluded: {skipped}")
    for index, chain_id in enumerate(filtered):
        print(f"{index}) chainID: {id_to_string(chain_id)}")
    chain_id = filtered[_prompt_choice(label, len(filtered))]
    return chain_id, chains[chain_id]


def _missing_subcommand(args: argparse.Namespace, store: CliStore) -> None:
    raise CliError(ERR_MISSING_SUBCOMMAND)


def _run_genesis_generate(args: argparse.Namespace, store: CliStore) -> None:
    if len(args.paths) != 1:
        raise CliError(ERR_INVALID_ARGS)
    generate_genesis(
        args.paths[0],
        args.genesis_file,
        args.min_unit_price,
        args.max_block_units,
        args.window_target_units,
        args.window_target_blocks,
    )
    print(f"created genesis and saved to {args.genesis_file}")


def _run_prometheus_generate(args: argparse.Namespace, store: CliStore) -> None:
    chain_id, uris = _prompt_chain(store, "select chainID")
    endpoints = [endpoint_from_uri(uri) for uri in uris]
    write_prometheus_config(args.prometheus_file, endpoints)
    panels = dashboard_panels(chain_id)
    for label, panel in zip(PANEL_LABELS, panels):
        print(f"{label}: {panel}")
    print(f"pre-built dashboard: {dashboard_url(panels)}")
    print(
        f"prometheus cmd: /tmp/prometheus --config.file={args.prometheus_file} "
        f"--storage.tsdb.path={args.prometheus_data}"
    )


def _build_parser() -> _Parser:
    common = _Parser(add_help=False)
    common.add_argument(
        "--database",
        default=argparse.SUPPRESS,
        help="path to database (will create it missing)",
    )
    root = _Parser(prog="token-cli", description="TokenVM CLI")
    root.add_argument(
        "--database",
        default=DEFAULT_DATABASE,
        help="path to database (will create it missing)",
    )
    commands = root.add_subparsers(dest="command", parser_class=_Parser)

    genesis = commands.add_parser("genesis", parents=[common])
    genesis.set_defaults(func=_missing_subcommand)
    genesis_sub = genesis.add_subparsers(dest="subcommand", parser_class=_Parser)
    gen = genesis_sub.add_parser(
        "generate",
        parents=[common],
        help="Creates a new genesis in the default location",
    )
    gen.add_argument("paths", nargs="*", metavar="custom allocations file")
    gen.add_argument("--genesis-file", default=DEFAULT_GENESIS, help="genesis file path")
    gen.add_argument("--min-unit-price", type=int, default=-1, help="minimum price")
    gen.add_argument("--max-block-units", type=int, default=-1, help="max block units")
    gen.add_argument(
        "--window-target-units", type=int, default=-1, help="window target units"
    )
    gen.add_argument(
        "--window-target-blocks", type=int, default=-1, help="window target blocks"
    )
    gen.set_defaults(func=_run_genesis_generate)

    prom = commands.add_parser("prometheus", parents=[common])
    prom.set_defaults(func=_missing_subcommand)
    prom_sub = prom.add_subparsers(dest="subcommand", parser_class=_Parser)
    pgen = prom_sub.add_parser("generate", parents=[common])
    pgen.add_argument(
        "--prometheus-file",
        default=DEFAULT_PROMETHEUS_FILE,
        help="prometheus file location",
    )
    pgen.add_argument(
        "--prometheus-data",
        default=f"/tmp/prometheus-{int(time.time())}",
        help="prometheus data location",
    )
    pgen.set_defaults(func=_run_prometheus_generate)
    return root


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line client and return its exit status."""
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    try:
        args = parser.parse_args(_expand_prefixes(args_list))
        func = getattr(args, "func", None)
        if func is None:
            parser.print_help()
            return 0
        print(f"database: {args.database}")
        with CliStore(args.database) as store:
            func(args, store)
    except (CliError, OSError, ValueError) as exc:
        print(f"token-cli exited with error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())