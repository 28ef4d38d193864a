"""Events a consumer receives from a streaming session or its archival task."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from askai.errors import AskAIError, StreamError
from askai.models import StoreOutcome


class SessionState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ERRORED, SessionState.CANCELED)


@dataclass(frozen=True)
class TokenEvent:
    text: str


@dataclass(frozen=True)
class EndEvent:
    """The stream ended cleanly (possibly with zero tokens) or was torn down."""


@dataclass(frozen=True)
class ErrorEvent:
    error: StreamError


@dataclass(frozen=True)
class ArchiveEvent:
    """Completion of a background archival task: exactly one of the fields is set."""

    outcome: StoreOutcome | None = None
    error: AskAIError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


StreamEvent = TokenEvent | EndEvent | ErrorEvent
