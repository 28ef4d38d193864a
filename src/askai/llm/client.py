"""LiteLLM client wrapper for streaming generation and embeddings.

All generation and embedding calls route through this module. No retry is
configured: a failed call surfaces to the caller and ends the session.
API key presence is validated before a session starts.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}

_LOCAL_PROVIDERS = frozenset({"ollama", "ollama_chat"})


@dataclass(frozen=True)
class GenerationRequest:
    """One streaming generation request: ``{model, prompt, options: {temperature}}``."""

    model: str
    prompt: str
    temperature: float


def provider_of(model: str) -> str:
    return model.split("/")[0].lower() if "/" in model else "openai"


def api_key_env(provider: str) -> str | None:
    """Env var holding the API key for *provider*; None for local or unknown providers."""
    return _PROVIDER_ENV.get(provider.lower())


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = api_key_env(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def _api_base_kwargs(model: str, api_base: str | None) -> dict[str, str]:
    # Only local providers take the configured base URL; hosted ones use their own.
    if api_base and provider_of(model) in _LOCAL_PROVIDERS:
        return {"api_base": api_base}
    return {}


def stream_completion(request: GenerationRequest, api_base: str | None = None) -> Iterator[str]:
    """Call litellm.completion(stream=True) and yield non-empty text chunks in order.

    End-of-stream is the iterator running out. Empty deltas are dropped.

    Raises:
        litellm.exceptions.APIError (and friends): On any transport/API failure,
            raised from the iterator at the point of failure.
    """
    response = litellm.completion(
        model=request.model,
        messages=[{"role": "user", "content": request.prompt}],
        temperature=request.temperature,
        stream=True,
        num_retries=0,
        **_api_base_kwargs(request.model, api_base),
    )
    for chunk in response:
        if not chunk.choices:
            continue
        text = chunk.choices[0].delta.content
        if text:
            yield text


def embed(model: str, text: str, api_base: str | None = None) -> list[float]:
    """Call litellm.embedding() and return the embedding vector.

    Returns an empty list if the service answered without data; callers
    decide whether that is an error.
    """
    response = litellm.embedding(
        model=model,
        input=[text],
        num_retries=0,
        **_api_base_kwargs(model, api_base),
    )
    if not response.data:
        return []
    return list(response.data[0]["embedding"] or [])
