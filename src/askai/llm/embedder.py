"""Text → fixed-length vector.

Every embedder reports its ``dimensions``; ``embed()`` refuses to return a
vector of any other length, because the similarity collection's dimension is
fixed for its lifetime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from askai.errors import EmbeddingError
from askai.llm import client

DEFAULT_DIMENSIONS = 1024


class BaseEmbedder(ABC):
    """Abstract base for all embedders.

    Subclasses implement ``_embed_raw()``; callers use ``embed()``, which wraps
    failures in ``EmbeddingError`` and enforces the output length. Instances
    hold no per-call state and may be shared between threads.
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be >= 1")
        self.dimensions = dimensions

    @abstractmethod
    def _embed_raw(self, text: str) -> list[float]:
        """Return the raw vector for *text* (any exception is wrapped by ``embed``)."""

    def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises:
            EmbeddingError: On network/protocol failure, an empty result, or a
                vector whose length differs from ``self.dimensions``.
        """
        try:
            vector = self._embed_raw(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"embedding request failed: {exc}") from exc

        if not vector:
            raise EmbeddingError("no embedding data returned")
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"embedding has {len(vector)} dimensions, collection expects {self.dimensions}"
            )
        return [float(v) for v in vector]


class LiteLLMEmbedder(BaseEmbedder):
    """Embedder backed by ``litellm.embedding()`` (Ollama ``mxbai-embed-large`` by default).

    Args:
        model: LiteLLM embedding model string (provider/model format).
        api_base: Base URL for local providers such as Ollama.
        dimensions: Expected output length.
    """

    def __init__(
        self,
        model: str = "ollama/mxbai-embed-large",
        api_base: str | None = "http://localhost:11434",
        dimensions: int = DEFAULT_DIMENSIONS,
    ) -> None:
        super().__init__(dimensions)
        self.model = model
        self.api_base = api_base

    def _embed_raw(self, text: str) -> list[float]:
        return client.embed(self.model, text, api_base=self.api_base)


class DeterministicEmbedder(BaseEmbedder):
    """Byte-derived vectors for tests and offline runs. Not semantically meaningful.

    Position ``i`` holds ``byte[i] / 256`` while ``i`` is within the UTF-8
    encoding of the text, and ``i / dimensions`` after it. Equal inputs give
    equal vectors.
    """

    def _embed_raw(self, text: str) -> list[float]:
        data = text.encode("utf-8")
        return [
            data[i] / 256.0 if i < len(data) else i / self.dimensions
            for i in range(self.dimensions)
        ]
