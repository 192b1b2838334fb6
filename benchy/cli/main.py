#!/usr/bin/env python3
"""
Main CLI entry point for benchy.

Commands:
- launch-network: provision keys and genesis, start every node, wait for quorum
- infos: node status table, optionally refreshed every N seconds
- temporary-failure: stop a node, wait, restart it and watch it recover
- scenario: transaction scenarios (reported as unsupported)
- shutdown: stop and remove node containers
- docker check: verify the container runtime is reachable
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import click
from loguru import logger
from pydantic import ValidationError
from rich.console import Console

from benchy.core.config import BenchySettings, RuntimeMode
from benchy.core.errors import BenchyError, Cancelled
from benchy.core.logging import configure_logging
from benchy.runtime.capabilities import Unsupported

from .benchy_cli import BenchyCLI

console = Console()

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def setup_logging(settings: BenchySettings, verbose: bool = False):
    """Setup logging configuration."""
    configure_logging(
        "DEBUG" if verbose else settings.log_level,
        debug_scopes=settings.log_debug_scopes,
        colorize=True,
        log_file=settings.log_file,
    )


def load_settings(ctx: click.Context) -> BenchySettings:
    overrides: dict[str, Any] = {}
    if ctx.obj.get("simulated"):
        overrides["runtime"] = RuntimeMode.SIMULATED
    if ctx.obj.get("base_dir"):
        overrides["base_dir"] = Path(ctx.obj["base_dir"])
    if ctx.obj.get("debug_scopes"):
        overrides["log_debug_scopes"] = ctx.obj["debug_scopes"]
    try:
        return BenchySettings(**overrides)
    except ValidationError as exc:
        console.print(f"[red]❌ Invalid configuration: {exc}[/red]")
        sys.exit(EXIT_FAILURE)


def run_command(ctx: click.Context, handler: Callable[[BenchyCLI], Awaitable[Any]]) -> Any:
    """Run one async handler with a fully wired BenchyCLI, mapping errors to exit codes."""
    settings = load_settings(ctx)
    setup_logging(settings, ctx.obj.get("verbose", False))

    async def _run() -> Any:
        async with BenchyCLI(settings, console=console) as benchy_cli:
            return await handler(benchy_cli)

    try:
        return asyncio.run(_run())
    except Cancelled as exc:
        console.print(f"\n[yellow]⚠️ Operation cancelled: {exc}[/yellow]")
        sys.exit(EXIT_CANCELLED)
    except BenchyError as exc:
        logger.debug("Command failed: {!r}", exc)
        console.print(f"[red]❌ {exc}[/red]")
        sys.exit(EXIT_FAILURE)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--simulated", is_flag=True, help="Use the in-process simulated runtime"
)
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False),
    help="Directory for genesis, node data and state (default ~/.benchy)",
)
@click.option(
    "--debug-scope",
    "debug_scopes",
    multiple=True,
    help="Log one subsystem at DEBUG, e.g. orchestration.failure (repeatable)",
)
@click.pass_context
def cli(
    ctx,
    verbose: bool,
    simulated: bool,
    base_dir: str | None,
    debug_scopes: tuple[str, ...],
):
    """
    benchy: launch and exercise a private Clique proof-of-authority network.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["simulated"] = simulated
    ctx.obj["base_dir"] = base_dir
    ctx.obj["debug_scopes"] = debug_scopes


@cli.command("launch-network")
@click.pass_context
def launch_network(ctx):
    """Generate keys and genesis, then start every node."""

    async def _launch(benchy_cli: BenchyCLI):
        report = await benchy_cli.launch_network()
        console.print(
            f"[bold green]Network launched in {report.elapsed:.1f}s[/bold green]"
        )

    run_command(ctx, _launch)


@cli.command()
@click.option(
    "--update",
    "-u",
    type=click.IntRange(min=0),
    default=0,
    help="Refresh every N seconds (0 shows the table once)",
)
@click.pass_context
def infos(ctx, update: int):
    """Show node status, blocks, peers, resources and balances."""

    async def _infos(benchy_cli: BenchyCLI):
        await benchy_cli.show_infos(update)

    run_command(ctx, _infos)


@cli.command("temporary-failure")
@click.argument("node")
@click.option(
    "--downtime",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds to keep the node down (default 40)",
)
@click.pass_context
def temporary_failure(ctx, node: str, downtime: int | None):
    """Stop NODE, wait, restart it and wait for recovery."""

    async def _failure(benchy_cli: BenchyCLI):
        report = await benchy_cli.temporary_failure(node, downtime)
        console.print(
            f"[bold green]{report.node_name} recovered after "
            f"{report.recovery_attempts} checks ({report.elapsed:.1f}s)[/bold green]"
        )

    run_command(ctx, _failure)


@cli.command()
@click.argument("name")
@click.pass_context
def scenario(ctx, name: str):
    """Run a transaction scenario: 0-3 or init, transfers, erc20, replacement."""

    async def _scenario(benchy_cli: BenchyCLI):
        return benchy_cli.scenario(name)

    result = run_command(ctx, _scenario)
    if isinstance(result, Unsupported):
        sys.exit(EXIT_FAILURE)


@cli.command()
@click.pass_context
def shutdown(ctx):
    """Stop and remove all node containers."""

    async def _shutdown(benchy_cli: BenchyCLI):
        return await benchy_cli.shutdown()

    report = run_command(ctx, _shutdown)
    if report.failed_nodes:
        sys.exit(EXIT_FAILURE)


@cli.group()
def docker():
    """Container runtime helpers."""


@docker.command("check")
@click.pass_context
def docker_check(ctx):
    """Verify the container runtime can create and remove networks."""

    async def _check(benchy_cli: BenchyCLI):
        await benchy_cli.docker_check()

    run_command(ctx, _check)


def main():
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️ Operation cancelled by user[/yellow]")
        sys.exit(EXIT_CANCELLED)


if __name__ == "__main__":
    main()
