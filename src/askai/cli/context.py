"""Process wiring shared by every command: config, vault, logger, store, dedup service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from askai.cli.errors import err_config, err_store_unreachable, err_vault
from askai.config import AskAIConfig, ConfigError, load_config
from askai.errors import ArchiveIOError, StoreError
from askai.llm.embedder import LiteLLMEmbedder
from askai.log import LOG_FILE_NAME, build_logger, close_logger
from askai.vault import QAArchive, ensure_vault_exists
from askai.vector.dedup import QADedupService
from askai.vector.store import SimilarityStore, connect


@dataclass
class AppContext:
    """Everything a command needs; ``store`` and ``dedup`` are None when indexing is off."""

    config: AskAIConfig
    logger: logging.Logger
    archive: QAArchive
    store: SimilarityStore | None = None
    dedup: QADedupService | None = None

    def indexing(self) -> tuple[SimilarityStore, QADedupService]:
        """Return the store and dedup service, which every index command needs."""
        if self.store is None or self.dedup is None:
            raise RuntimeError("context was opened without a similarity store")
        return self.store, self.dedup

    def close(self) -> None:
        if self.store is not None:
            try:
                self.store.close()
            except StoreError as exc:
                self.logger.warning("failed to close store client", exc_info=exc)
        self.logger.info("askai stopped")
        close_logger(self.logger)


def load_config_or_exit(console: Console, vault: Path | None = None) -> AskAIConfig:
    try:
        return load_config(vault)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def open_context(console: Console, cfg: AskAIConfig, with_store: bool = True) -> AppContext:
    """Ensure the vault, start the logger, and (optionally) connect the store.

    The collection is created with the configured dimension if missing.
    Any failure prints an actionable message and exits with code 1.
    """
    try:
        ensure_vault_exists(cfg.vault)
    except ArchiveIOError as exc:
        console.print(err_vault(str(exc)))
        raise typer.Exit(1)

    logger = build_logger(cfg.vault / LOG_FILE_NAME)
    logger.info("askai started", extra={"data": {"vault": str(cfg.vault)}})
    ctx = AppContext(config=cfg, logger=logger, archive=QAArchive.in_vault(cfg.vault))

    if not with_store:
        return ctx

    try:
        store = SimilarityStore(
            connect(cfg.store),
            cfg.store.collection,
            cfg.embedding.dimensions,
            logger=logger.getChild("store"),
        )
        ctx.store = store
        store.ensure_collection(cfg.embedding.dimensions)
    except StoreError as exc:
        logger.error("failed to ensure collection", exc_info=exc)
        console.print(err_store_unreachable(cfg.store.endpoint, str(exc)))
        ctx.close()
        raise typer.Exit(1)

    embedder = LiteLLMEmbedder(
        model=cfg.embedding.model,
        api_base=cfg.generation.api_url,
        dimensions=cfg.embedding.dimensions,
    )
    ctx.dedup = QADedupService(embedder, store, ctx.archive, logger=logger.getChild("dedup"))
    return ctx
