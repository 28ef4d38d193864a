"""askai ask — one question, one streamed answer.

Usage:
  askai ask "What is AI?"
  askai ask "What is AI?" --model ollama/llama3.2 --temperature 0.7
  askai ask "What is AI?" --no-save

Ctrl+C while the answer streams cancels the session; nothing is saved.
A completed, non-empty answer is archived to <vault>/que_ans.json and
indexed in the similarity store unless the exact pair is already there.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from askai.cli.context import load_config_or_exit, open_context
from askai.cli.errors import (
    err_archive_failed,
    err_empty_question,
    err_no_api_key,
    err_stream_failed,
    warn_not_indexed,
)
from askai.config import GenerationCfg, clamp_temperature
from askai.errors import ArchiveIOError
from askai.llm.client import provider_of
from askai.stream.driver import SessionDriver
from askai.stream.events import ArchiveEvent, ErrorEvent

console = Console()


def stream_answer(driver: SessionDriver, question: str, out: Console) -> bool:
    """Submit *question*, print tokens as they arrive, handle Ctrl+C.

    Returns:
        True if the stream completed, False if it was canceled, failed or
        could not start (the reason is printed).
    """
    try:
        session = driver.submit(question)
    except EnvironmentError:
        out.print(err_no_api_key(provider_of(driver.settings.model)))
        return False

    if session is None:
        out.print(err_empty_question())
        return False

    try:
        event = driver.run_until_done(
            on_token=lambda text: out.print(text, end="", markup=False, highlight=False, soft_wrap=True)
        )
    except KeyboardInterrupt:
        driver.cancel()
        out.print("\n[yellow]Canceled.[/] Nothing was saved.")
        return False

    out.print()
    if isinstance(event, ErrorEvent):
        out.print(err_stream_failed(str(event.error), driver.settings.api_url))
        return False
    return True


def report_archive(event: ArchiveEvent | None, out: Console) -> None:
    """Print the archival outcome (nothing if archival did not run)."""
    if event is None:
        return
    if event.error is not None:
        if isinstance(event.error, ArchiveIOError):
            out.print(err_archive_failed(str(event.error)))
        else:
            out.print(warn_not_indexed(str(event.error)))
        return
    if event.outcome is not None and event.outcome.is_duplicate:
        out.print("  [dim]✓ Saved to vault — already in index[/]")
    else:
        out.print("  [dim]✓ Saved to vault and indexed[/]")


def apply_overrides(
    settings: GenerationCfg,
    model: str | None,
    temperature: float | None,
    api_url: str | None,
) -> GenerationCfg:
    if model:
        settings.model = model
    if temperature is not None:
        settings.temperature = clamp_temperature(temperature)
    if api_url:
        settings.api_url = api_url
    return settings


def ask_cmd(
    question: Annotated[
        str,
        typer.Argument(help="The question to send to the model."),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="LiteLLM model string (e.g. ollama/gemma3:1b)."),
    ] = None,
    temperature: Annotated[
        float | None,
        typer.Option("--temperature", "-t", help="Sampling temperature, clamped to 0.1–2.0."),
    ] = None,
    api_url: Annotated[
        str | None,
        typer.Option("--api-url", help="Base URL of the model server."),
    ] = None,
    no_save: Annotated[
        bool,
        typer.Option("--no-save", help="Do not archive or index the answer."),
    ] = False,
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Ask one question and stream the answer."""
    cfg = load_config_or_exit(console, vault)
    apply_overrides(cfg.generation, model, temperature, api_url)

    ctx = open_context(console, cfg, with_store=not no_save)
    driver = SessionDriver(cfg.generation, ctx.dedup, logger=ctx.logger.getChild("session"))

    try:
        if not stream_answer(driver, question, console):
            raise typer.Exit(1)
        report_archive(driver.poll_archive(timeout=None), console)
    finally:
        driver.close()
        ctx.close()
