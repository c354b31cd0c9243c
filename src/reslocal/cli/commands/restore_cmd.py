from __future__ import annotations

import argparse
from pathlib import Path

from reslocal.cli.commands.localize_cmd import process_documents
from reslocal.cli.context import CLIContext
from reslocal.core.config import STATE_BACKENDS, RunConfig


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("restore", help="Point <name>_dl.html copies back at the original URLs")
    parser.add_argument("paths", nargs="+", help="*_dl.html files or directories holding them")
    parser.add_argument("--state-backend", choices=STATE_BACKENDS, default="sqlite")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    config = RunConfig(reverse=True, state_backend=args.state_backend).validate()
    return process_documents(config, [Path(p) for p in args.paths], ctx, title="Restore Results")
