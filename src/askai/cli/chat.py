"""askai chat — interactive question loop.

Type a question and press Enter; the answer streams below it. Ctrl+C while
an answer streams cancels it; Ctrl+C (or Ctrl+D) at the prompt exits.

Slash commands:
  /model NAME     switch model for the next question
  /temp up|down   nudge temperature by 0.1 (bounded to 0.1–2.0)
  /url URL        switch model server base URL
  /save           persist model, temperature and URL to config.yaml
  /reindex        push every archived pair into the similarity index
  /help           show this list
  /quit           exit
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from askai.cli.ask import report_archive, stream_answer
from askai.cli.context import AppContext, load_config_or_exit, open_context
from askai.cli.errors import err_archive_unreadable
from askai.config import ConfigError, adjust_temperature, save_config
from askai.errors import ArchiveIOError
from askai.stream.driver import SessionDriver

console = Console()

_HELP = (
    "  [bold]/model[/] NAME   [bold]/temp[/] up|down   [bold]/url[/] URL   "
    "[bold]/save[/]   [bold]/reindex[/]   [bold]/quit[/]"
)


def chat_cmd(
    no_save: Annotated[
        bool,
        typer.Option("--no-save", help="Do not archive or index answers."),
    ] = False,
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Interactive chat: stream answers and save every completed exchange."""
    cfg = load_config_or_exit(console, vault)
    ctx = open_context(console, cfg, with_store=not no_save)
    driver = SessionDriver(cfg.generation, ctx.dedup, logger=ctx.logger.getChild("session"))

    console.print(f"[bold]askai[/] — {cfg.generation.model} (temperature {cfg.generation.temperature:.1f})")
    console.print(_HELP)

    try:
        while True:
            report_archive(driver.poll_archive(), console)
            try:
                line = console.input("\n[bold magenta]›[/] ").strip()
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            if not line:
                continue
            if line.startswith("/"):
                if not _run_command(line, driver, ctx):
                    break
                continue

            if stream_answer(driver, line, console):
                # Wait so the status line lands before the next prompt.
                report_archive(driver.poll_archive(timeout=None), console)
    finally:
        driver.close()
        ctx.close()


def _run_command(line: str, driver: SessionDriver, ctx: AppContext) -> bool:
    """Execute one slash command. Returns False when the loop should exit."""
    name, _, arg = line[1:].partition(" ")
    arg = arg.strip()
    settings = driver.settings

    if name in ("quit", "exit", "q"):
        return False

    if name == "help":
        console.print(_HELP)
    elif name == "model":
        if not arg:
            console.print(f"  Model: [bold]{settings.model}[/]")
        else:
            settings.model = arg
            console.print(f"  [green]✓[/] Model set to {arg}")
    elif name == "temp":
        steps = {"up": 1, "+": 1, "down": -1, "-": -1}.get(arg.lower())
        if steps is None:
            console.print("  Usage: /temp up|down")
        else:
            settings.temperature = adjust_temperature(settings.temperature, steps)
            console.print(f"  Temperature: {settings.temperature:.1f}")
    elif name == "url":
        if not arg:
            console.print(f"  API URL: [bold]{settings.api_url}[/]")
        else:
            settings.api_url = arg
            console.print("  [green]✓[/] API URL updated")
    elif name == "save":
        try:
            path = save_config(ctx.config)
        except (OSError, ConfigError) as exc:
            console.print(f"  [red]Failed to save settings:[/] {exc}")
        else:
            console.print(f"  [green]✓[/] Settings saved to {path}")
    elif name == "reindex":
        if ctx.dedup is None:
            console.print("  [yellow]Indexing is off (--no-save).[/]")
        else:
            try:
                report = ctx.dedup.reindex_archive()
            except ArchiveIOError as exc:
                console.print(err_archive_unreadable(str(exc)))
            else:
                console.print(
                    f"  [green]✓[/] Indexed {report.indexed}, already present {report.duplicates}, "
                    f"skipped {report.skipped}, failed {report.failed}"
                )
    else:
        console.print(f"  Unknown command: /{name}")
        console.print(_HELP)
    return True
