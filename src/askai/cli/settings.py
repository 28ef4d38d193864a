"""askai config CLI commands.

Commands:
  askai config show   — print the effective configuration
  askai config set    — update model / temperature / API URL in config.yaml
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from askai.cli.ask import apply_overrides
from askai.cli.context import load_config_or_exit
from askai.config import ConfigError, save_config

console = Console()

config_app = typer.Typer(
    name="config",
    help="Show or change saved settings.",
    add_completion=False,
)


@config_app.command("show")
def config_show_cmd(
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Print the effective configuration (file + environment)."""
    cfg = load_config_or_exit(console, vault)

    table = Table(title="askai configuration", show_header=True, header_style="bold")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("vault", str(cfg.vault))
    table.add_row("generation.model", cfg.generation.model)
    table.add_row("generation.temperature", f"{cfg.generation.temperature:.1f}")
    table.add_row("generation.api_url", cfg.generation.api_url)
    table.add_row("embedding.model", cfg.embedding.model)
    table.add_row("embedding.dimensions", str(cfg.embedding.dimensions))
    table.add_row("store.endpoint", cfg.store.endpoint)
    table.add_row("store.collection", cfg.store.collection)

    console.print(table)
    if not cfg.config_path.exists():
        console.print(f"\n  [dim]No {cfg.config_path.name} yet — showing defaults.[/]")


@config_app.command("set")
def config_set_cmd(
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
    vault: Annotated[
        Path | None,
        typer.Option("--vault", hidden=True, help="Override the vault directory (for testing)."),
    ] = None,
) -> None:
    """Save generation settings to <vault>/config.yaml."""
    if model is None and temperature is None and api_url is None:
        console.print(
            "[yellow]Nothing to change.[/]\n"
            "  Pass at least one of --model, --temperature, --api-url."
        )
        raise typer.Exit(1)

    cfg = load_config_or_exit(console, vault)
    apply_overrides(cfg.generation, model, temperature, api_url)

    try:
        path = save_config(cfg)
    except (OSError, ConfigError) as exc:
        console.print(f"[red]Error:[/] Failed to save settings: {exc}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/] Settings saved to {path}")
    console.print(
        f"  model={cfg.generation.model}  temperature={cfg.generation.temperature:.1f}  "
        f"api_url={cfg.generation.api_url}"
    )
