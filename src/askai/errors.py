"""Exception taxonomy for the askai core.

Every failure that crosses a component boundary is one of these types, with
the underlying library exception attached as ``__cause__``.
"""

from __future__ import annotations


class AskAIError(Exception):
    """Root of all askai errors."""


class EmbeddingError(AskAIError):
    """Embedding call failed, returned nothing, or returned the wrong length."""


class StoreError(AskAIError):
    """A similarity-store RPC failed."""


class StreamError(AskAIError):
    """The generation call failed or raised inside the producer."""


class ArchiveIOError(AskAIError):
    """Reading, parsing or writing the local Q&A archive failed."""


class SessionBusyError(AskAIError):
    """A question was submitted while a streaming session is still active."""
