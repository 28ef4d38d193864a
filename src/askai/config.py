"""askai configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (OLLAMA_API_URL, OLLAMA_MODEL, ASKAI_EMBEDDING_MODEL,
     QDRANT_HOST, QDRANT_GRPC_PORT)
  3. <vault>/config.yaml
  4. Hardcoded defaults

The vault directory itself comes from ASKAI_VAULT, falling back to ~/.askAI.
Config files must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_DEFAULT_VAULT_DIR = ".askAI"
_CONFIG_NAME = "config.yaml"

TEMPERATURE_MIN = 0.1
TEMPERATURE_MAX = 2.0
TEMPERATURE_STEP = 0.1

# api_key, api-key, api_secret, *_token, token, *_secret, secret, password, credential(s).
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["generation", "embedding", "store"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GenerationCfg:
    """Streaming generation settings (config.yaml: generation:).

    Attributes:
        model: LiteLLM model string in 'provider/model' format.
        temperature: Sampling temperature, kept within [0.1, 2.0].
        api_url: Base URL of the generation/embedding service.
    """

    model: str = "ollama/gemma3:1b"
    temperature: float = 1.5
    api_url: str = "http://localhost:11434"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (config.yaml: embedding:)."""

    model: str = "ollama/mxbai-embed-large"
    dimensions: int = 1024


@dataclass
class StoreCfg:
    """Similarity store endpoint (config.yaml: store:)."""

    host: str = "localhost"
    port: int = 6333
    grpc_port: int = 6334
    prefer_grpc: bool = True
    collection: str = "askai_questions"

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.grpc_port if self.prefer_grpc else self.port}"


@dataclass
class AskAIConfig:
    """Root configuration object, built by load_config() from merged layers."""

    vault: Path = field(default_factory=lambda: vault_path())
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    store: StoreCfg = field(default_factory=StoreCfg)

    @property
    def config_path(self) -> Path:
        return self.vault / _CONFIG_NAME


# ---------------------------------------------------------------------------
# Paths + temperature
# ---------------------------------------------------------------------------


def vault_path() -> Path:
    """Return the vault directory: $ASKAI_VAULT, else ~/.askAI."""
    if v := os.environ.get("ASKAI_VAULT"):
        return Path(v)
    try:
        return Path.home() / _DEFAULT_VAULT_DIR
    except RuntimeError:
        return Path.cwd() / _DEFAULT_VAULT_DIR


def clamp_temperature(value: float) -> float:
    return round(min(max(value, TEMPERATURE_MIN), TEMPERATURE_MAX), 1)


def adjust_temperature(current: float, steps: int) -> float:
    """Move *current* by *steps* × 0.1, clamped to [0.1, 2.0].

    Examples:
        adjust_temperature(1.5, +1) -> 1.6
        adjust_temperature(2.0, +1) -> 2.0
        adjust_temperature(0.1, -3) -> 0.1
    """
    return clamp_temperature(current + steps * TEMPERATURE_STEP)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _coerce(section: str, key: str, value: Any, kind: type) -> Any:
    try:
        if kind is bool and isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid value for {section}.{key}: {value!r} (expected {kind.__name__})"
        ) from exc


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _cfg_from_dict(data: dict[str, Any], vault: Path) -> AskAIConfig:
    """Build an *AskAIConfig* from a raw YAML dict."""
    cfg = AskAIConfig(vault=vault)

    if g := data.get("generation"):
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            temperature=clamp_temperature(
                _coerce("generation", "temperature", g.get("temperature", cfg.generation.temperature), float)
            ),
            api_url=str(g.get("api_url") or cfg.generation.api_url),
        )

    if e := data.get("embedding"):
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=_coerce("embedding", "dimensions", e.get("dimensions", cfg.embedding.dimensions), int),
        )
        if cfg.embedding.dimensions < 1:
            raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")

    if s := data.get("store"):
        cfg.store = StoreCfg(
            host=str(s.get("host", cfg.store.host)),
            port=_coerce("store", "port", s.get("port", cfg.store.port), int),
            grpc_port=_coerce("store", "grpc_port", s.get("grpc_port", cfg.store.grpc_port), int),
            prefer_grpc=_coerce("store", "prefer_grpc", s.get("prefer_grpc", cfg.store.prefer_grpc), bool),
            collection=str(s.get("collection", cfg.store.collection)),
        )

    return cfg


def _apply_env_overrides(cfg: AskAIConfig) -> AskAIConfig:
    if url := os.environ.get("OLLAMA_API_URL"):
        cfg.generation.api_url = url
    if model := os.environ.get("OLLAMA_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("ASKAI_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if host := os.environ.get("QDRANT_HOST"):
        cfg.store.host = host
    if port := os.environ.get("QDRANT_GRPC_PORT"):
        cfg.store.grpc_port = _coerce("store", "grpc_port", port, int)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(vault: Path | None = None) -> AskAIConfig:
    """Load and return a merged *AskAIConfig*.

    Args:
        vault: Vault directory override (for testing). Defaults to vault_path().

    Returns:
        Config with file values and env var overrides applied.

    Raises:
        ConfigError: If the file contains API-key-like fields or invalid values.
    """
    vault = vault if vault is not None else vault_path()
    path = vault / _CONFIG_NAME

    raw: dict[str, Any] = {}
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config '{path}' must be a mapping at the top level.")
        _check_no_api_keys(raw, path)
        _warn_unknown_keys(raw, path)

    cfg = _cfg_from_dict(raw, vault)
    return _apply_env_overrides(cfg)


def save_config(cfg: AskAIConfig) -> Path:
    """Persist the generation settings to ``<vault>/config.yaml``.

    Other sections already present in the file are preserved. The file is
    written with mode 0o600.

    Returns:
        Path to the written config file.

    Raises:
        ConfigError: If the existing file is not a YAML mapping.
    """
    path = cfg.config_path
    path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, Any] = {}
    if path.exists():
        try:
            existing = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
        if not isinstance(existing, dict):
            raise ConfigError(f"Config '{path}' must be a mapping at the top level.")

    existing["generation"] = {
        "model": cfg.generation.model,
        "temperature": clamp_temperature(cfg.generation.temperature),
        "api_url": cfg.generation.api_url,
    }

    path.write_text(yaml.safe_dump(existing, sort_keys=False), encoding="utf-8")
    path.chmod(0o600)
    return path
