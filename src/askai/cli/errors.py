"""askai rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from askai.cli.errors import err_store_unreachable
    console.print(err_store_unreachable("localhost:6334", str(exc)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from askai.llm.client import api_key_env


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = api_key_env(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  Or use a local model:  askai config set --model ollama/gemma3:1b"
    )


def err_store_unreachable(endpoint: str, detail: str) -> str:
    """Qdrant could not be reached or refused the collection setup."""
    return (
        f"[red]Error:[/] Cannot use the similarity store at '{endpoint}'.\n"
        f"  {detail}\n"
        "  Start Qdrant:  docker run -p 6333:6333 -p 6334:6334 qdrant/qdrant\n"
        "  Or answer without saving:  askai ask --no-save \"...\""
    )


def err_stream_failed(detail: str, api_url: str) -> str:
    """Generation call failed mid-stream or before the first token."""
    return (
        f"[red]Error:[/] {detail}\n"
        f"  Check that the model server is running at {api_url}\n"
        "  and that the model is pulled:  ollama pull <model>"
    )


def err_archive_failed(detail: str) -> str:
    """The pair could not be written to the local archive."""
    return (
        f"[red]Error:[/] Failed to save conversation: {detail}\n"
        "  The answer above was not written to the vault. Check that\n"
        "  que_ans.json in the vault is writable and valid JSON, then re-run."
    )


def err_vault(detail: str) -> str:
    """Vault directory cannot be created or written."""
    return (
        f"[red]Error:[/] {detail}\n"
        "  Point askai at a writable directory:  export ASKAI_VAULT=~/askai-vault"
    )


def err_config(detail: str) -> str:
    """Config file is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}"
    )


def err_empty_question() -> str:
    return (
        "[red]Error:[/] The question is empty.\n"
        "  Usage:  askai ask \"What is AI?\""
    )


def warn_not_indexed(detail: str) -> str:
    """The pair was archived locally but could not be indexed."""
    return (
        f"[yellow]⚠[/] Saved to vault, not indexed: {detail}\n"
        "  Run:  askai index reindex  once the store is reachable."
    )


def err_archive_unreadable(detail: str) -> str:
    """The local archive exists but cannot be read or parsed."""
    return (
        f"[red]Error:[/] {detail}\n"
        "  Fix or move que_ans.json in the vault, then re-run."
    )
