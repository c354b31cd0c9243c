from __future__ import annotations

import argparse
from pathlib import Path

from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from reslocal.application.services.localization_service import (
    DocumentResult,
    LocalizationService,
    discover_documents,
)
from reslocal.application.services.resolver_service import ResolverRegistry
from reslocal.cli.context import CLIContext
from reslocal.core.config import (
    DEFAULT_RECONNECT_ATTEMPTS,
    STATE_BACKENDS,
    RunConfig,
    build_remote_host,
    default_timeout_seconds,
    default_tries,
)


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("localize", help="Download remote resources and write <name>_dl.html copies")
    parser.add_argument("paths", nargs="+", help="HTML files or directories holding them")
    parser.add_argument("--tries", type=int, default=default_tries(), help="Fetch attempts per resource")
    parser.add_argument("--timeout", type=float, default=default_timeout_seconds(), help="Timeout in seconds")
    parser.add_argument("--ssh-host", help="Fetch through wget on this host, as hostname[:port]")
    parser.add_argument("--ssh-user", help="User name on the SSH host")
    parser.add_argument("--ssh-password", help="Password (or key passphrase); defaults to $RESLOCAL_SSH_PASSWORD")
    parser.add_argument("--ssh-key", type=Path, help="Private key file for the SSH host")
    parser.add_argument("--reconnect-attempts", type=int, default=DEFAULT_RECONNECT_ATTEMPTS)
    parser.add_argument("--state-backend", choices=STATE_BACKENDS, default="sqlite")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    config = RunConfig(
        tries=args.tries,
        timeout_seconds=args.timeout,
        reverse=False,
        remote=build_remote_host(
            args.ssh_host,
            args.ssh_user,
            password=args.ssh_password,
            key_file=args.ssh_key,
        ),
        state_backend=args.state_backend,
        reconnect_attempts=args.reconnect_attempts,
    ).validate()
    return process_documents(config, [Path(p) for p in args.paths], ctx, title="Localize Results")


def process_documents(config: RunConfig, paths: list[Path], ctx: CLIContext, *, title: str) -> int:
    documents = discover_documents(paths, reverse=config.reverse)
    if not documents:
        ctx.console.print("[yellow]No HTML documents to process[/yellow]")
        return 0

    results: list[DocumentResult] = []
    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=ctx.console,
    )

    with ResolverRegistry(config) as registry, progress:
        service = LocalizationService(registry)
        task = progress.add_task("Restoring" if config.reverse else "Localizing", total=len(documents))
        for document in documents:
            results.extend(service.run([document]))
            progress.advance(task, 1)
        stats = [resolver.stats for resolver in registry.resolvers()]

    table = Table(title=title)
    table.add_column("File", overflow="fold")
    table.add_column("Status")
    table.add_column("Rewritten", justify="right")
    table.add_column("Output / Error", overflow="fold")
    for result in results:
        detail = str(result.output) if result.output is not None else result.message
        table.add_row(str(result.source), result.status, str(result.rewritten), detail)
    ctx.console.print(table)

    if not config.reverse and stats:
        ctx.console.print(
            "fetched={fetched} deduplicated={dedup} cached={cached} placeholders={placeholders} failed={failed}".format(
                fetched=sum(s.fetched for s in stats),
                dedup=sum(s.deduplicated for s in stats),
                cached=sum(s.cached for s in stats),
                placeholders=sum(s.placeholders for s in stats),
                failed=sum(s.failed for s in stats),
            )
        )
    elif stats:
        ctx.console.print(f"restored={sum(s.reversed for s in stats)}")

    return 1 if any(result.status == "error" for result in results) else 0
