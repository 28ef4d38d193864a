"""askai index — similarity-index maintenance.

Commands:
  askai index reindex         — push every archived pair into the index (dedup-checked)
  askai index reset [--yes]   — delete and recreate the collection
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from askai.cli.context import load_config_or_exit, open_context
from askai.cli.errors import err_archive_unreadable, err_store_unreachable
from askai.errors import ArchiveIOError, StoreError

console = Console()

index_app = typer.Typer(
    name="index",
    help="Maintain the similarity index (reindex, reset).",
    add_completion=False,
)


@index_app.command("reindex")
def index_reindex_cmd(
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Index every archived Q&A pair that is not in the similarity store yet."""
    cfg = load_config_or_exit(console, vault)
    ctx = open_context(console, cfg)
    _, dedup = ctx.indexing()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task("Indexing archive…", total=None)
            try:
                report = dedup.reindex_archive()
            except ArchiveIOError as exc:
                console.print(err_archive_unreadable(str(exc)))
                raise typer.Exit(1)

        if report.total == 0:
            console.print("[yellow]No Q&A pairs found to index.[/]")
            raise typer.Exit(0)

        console.print(
            f"[green]✓[/] Indexed {report.indexed}/{report.total} Q&A pairs\n"
            f"  Already present: {report.duplicates}  |  "
            f"Skipped (empty): {report.skipped}  |  Failed: {report.failed}"
        )
        if report.failed:
            console.print("  [yellow]Some pairs failed — see askai.log in the vault.[/]")
            raise typer.Exit(1)
    finally:
        ctx.close()


@index_app.command("reset")
def index_reset_cmd(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Delete and recreate the collection. The local archive is untouched."""
    cfg = load_config_or_exit(console, vault)
    ctx = open_context(console, cfg)
    store, _ = ctx.indexing()

    try:
        try:
            count = store.count()
        except StoreError as exc:
            console.print(err_store_unreachable(cfg.store.endpoint, str(exc)))
            raise typer.Exit(1)
        console.print(
            f"\nReset collection: [bold]{cfg.store.collection}[/]  ({count} records)"
        )
        if not yes:
            if not typer.confirm("Confirm reset?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        try:
            store.reset_collection()
        except StoreError as exc:
            console.print(err_store_unreachable(cfg.store.endpoint, str(exc)))
            raise typer.Exit(1)

        console.print(f"\n[green]✓[/] Reset: {cfg.store.collection}")
        console.print("  Run:  askai index reindex  to rebuild it from the archive.")
    finally:
        ctx.close()
