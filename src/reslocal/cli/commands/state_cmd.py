from __future__ import annotations

import argparse
from pathlib import Path

from rich.table import Table

from reslocal.cli.context import CLIContext
from reslocal.core.config import STATE_BACKENDS
from reslocal.core.errors import ConfigurationError
from reslocal.core.naming import RESOURCES_DIR_NAME, base_location_for
from reslocal.infrastructure.state.store import open_state_store


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("state", help="Show stored resolution state for a document")
    parser.add_argument("path", help="An HTML document or its resources directory")
    parser.add_argument("--state-backend", choices=STATE_BACKENDS, default="sqlite")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    path = Path(args.path).expanduser().resolve()
    if path.is_dir() and path.name == RESOURCES_DIR_NAME:
        base = path
    elif path.is_file():
        base = base_location_for(path)
    else:
        raise ConfigurationError(f"Not a document or resources directory: {path}")

    if not base.is_dir():
        ctx.console.print(f"[yellow]No resources stored yet[/yellow] {base}")
        return 0

    with open_state_store(base, args.state_backend, writable=False) as store:
        counts = store.counts()
        location = store.location

    table = Table(title=f"State ({location})")
    table.add_column("Collection")
    table.add_column("Entries", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    ctx.console.print(table)
    return 0
