from __future__ import annotations

import argparse
import logging

from rich.console import Console

from reslocal.cli.commands import localize_cmd, restore_cmd, state_cmd
from reslocal.cli.context import CLIContext
from reslocal.core.errors import LocalizerError
from reslocal.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reslocal",
        description="Download remote resources of HTML documents and point the documents at local copies",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    localize_cmd.register(subparsers)
    restore_cmd.register(subparsers)
    state_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    console = Console()
    configure_logging(args.verbose)
    ctx = CLIContext(console=console, verbosity=args.verbose)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except LocalizerError as exc:
        logger.error(str(exc))
        return 1
