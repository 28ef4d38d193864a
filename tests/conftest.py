"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from qdrant_client import QdrantClient

from askai.llm.embedder import DeterministicEmbedder
from askai.log import LOG_FILE_NAME, build_logger, close_logger
from askai.vault import QAArchive
from askai.vector.dedup import QADedupService
from askai.vector.store import SimilarityStore

DIMENSIONS = 1024

_ENV_VARS = (
    "ASKAI_VAULT",
    "OLLAMA_API_URL",
    "OLLAMA_MODEL",
    "ASKAI_EMBEDDING_MODEL",
    "QDRANT_HOST",
    "QDRANT_GRPC_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's shell settings out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def vault(tmp_path) -> Path:
    path = tmp_path / "vault"
    path.mkdir()
    return path


@pytest.fixture
def logger(vault) -> logging.Logger:
    log = build_logger(vault / LOG_FILE_NAME)
    yield log
    close_logger(log)


@pytest.fixture
def qdrant():
    """In-process Qdrant, discarded after the test."""
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def store(qdrant, logger) -> SimilarityStore:
    s = SimilarityStore(qdrant, "test_questions", DIMENSIONS, logger=logger)
    s.ensure_collection()
    return s


@pytest.fixture
def embedder() -> DeterministicEmbedder:
    return DeterministicEmbedder(DIMENSIONS)


@pytest.fixture
def archive(vault) -> QAArchive:
    return QAArchive.in_vault(vault)


@pytest.fixture
def dedup(embedder, store, archive, logger) -> QADedupService:
    return QADedupService(embedder, store, archive, logger=logger)
