"""Session driver: the single-threaded consumer loop around StreamSession.

The driver owns the visible conversation state. It starts one session per
question, applies each event to the state, tears the session down on any
terminal event, and hands a completed, non-empty answer to the dedup service
on a background worker. The archival task is a ``Future`` the caller can poll
(``poll_archive()``) or wait for (``poll_archive(timeout=None)``), so its
failures surface as ``ArchiveEvent.error`` rather than vanishing.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass

from askai.config import GenerationCfg
from askai.errors import ArchiveIOError, AskAIError, SessionBusyError
from askai.llm import client
from askai.llm.client import GenerationRequest
from askai.models import StoreOutcome
from askai.stream.events import ArchiveEvent, EndEvent, ErrorEvent, SessionState, StreamEvent, TokenEvent
from askai.stream.session import StreamFn, StreamSession
from askai.vector.dedup import QADedupService


@dataclass
class ConversationState:
    """What the terminal shows: the last question, the (partial) answer, a status line."""

    question: str = ""
    response: str = ""
    status: str = ""
    error: str | None = None
    streaming: bool = False


class SessionDriver:
    """Drive one streaming session at a time and archive completed answers.

    Args:
        settings: Live generation settings; read again for every new session.
        dedup: Dedup service used for archival (None disables archival).
        stream_fn: Chunk iterator factory; defaults to LiteLLM streaming
            against ``settings.api_url``.
        logger: Process logger.
    """

    def __init__(
        self,
        settings: GenerationCfg,
        dedup: QADedupService | None = None,
        stream_fn: StreamFn | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self._dedup = dedup
        self._stream_fn = stream_fn or self._litellm_stream
        self._log = logger or logging.getLogger(__name__)
        # One worker: archive appends are read-merge-rewrite and must not overlap.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="askai-archive")

        self.state = ConversationState()
        self.session: StreamSession | None = None
        self.archive_task: Future[StoreOutcome] | None = None

    def _litellm_stream(self, request: GenerationRequest):
        return client.stream_completion(request, api_base=self.settings.api_url)

    @property
    def streaming(self) -> bool:
        return self.session is not None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def submit(self, question: str) -> StreamSession | None:
        """Start a session for *question*. Blank questions are ignored (returns None).

        Raises:
            SessionBusyError: If a session is still streaming.
            EnvironmentError: If the configured model needs an API key that is not set.
        """
        if not question.strip():
            return None
        if self.session is not None:
            raise SessionBusyError("a response is still streaming; cancel it first")

        client.validate_api_key(self.settings.model)
        request = GenerationRequest(
            model=self.settings.model,
            prompt=question,
            temperature=self.settings.temperature,
        )
        session = StreamSession(request, self._stream_fn, logger=self._log)
        self.state = ConversationState(question=question, status=self.state.status, streaming=True)
        self.session = session
        session.start()
        return session

    def poll(self) -> StreamEvent:
        """Wait for the next session event and apply it to ``state``.

        Raises:
            RuntimeError: If no session is active.
        """
        session = self.session
        if session is None:
            raise RuntimeError("no active session")

        event = session.await_next_event()

        if isinstance(event, TokenEvent):
            self.state.response += event.text
            return event

        self._end_session(session)
        if isinstance(event, ErrorEvent):
            self.state.response = ""
            self.state.error = f"Error: {event.error}"
        elif isinstance(event, EndEvent):
            text = session.take_full_response()
            if session.state is SessionState.COMPLETED and text:
                self._start_archival(self.state.question, text)
        return event

    def run_until_done(self, on_token=None) -> StreamEvent:
        """Poll until the session ends; call ``on_token(text)`` for each token.

        Returns:
            The terminal event (EndEvent or ErrorEvent).
        """
        while True:
            event = self.poll()
            if isinstance(event, TokenEvent):
                if on_token is not None:
                    on_token(event.text)
                continue
            return event

    def cancel(self) -> bool:
        """Cancel the active session (no archival). Returns False if none was active."""
        session = self.session
        if session is None:
            return False
        session.cancel()
        self._end_session(session)
        self.state.response = ""
        self.state.status = "Canceled"
        self._log.info("stream canceled by user")
        return True

    def _end_session(self, session: StreamSession) -> None:
        session.teardown()
        self.session = None
        self.state.streaming = False

    # ------------------------------------------------------------------
    # Archival
    # ------------------------------------------------------------------

    def _start_archival(self, question: str, answer: str) -> None:
        if self._dedup is None:
            return
        self.archive_task = self._executor.submit(self._dedup.store_if_new, question, answer)
        self.state.status = "Saving conversation…"

    def poll_archive(self, timeout: float | None = 0.0) -> ArchiveEvent | None:
        """Report the archival task's completion once.

        Args:
            timeout: Seconds to wait; ``None`` waits until it finishes, ``0``
                only checks.

        Returns:
            ArchiveEvent when the task has finished (first call only), else None.
            An unexpected exception from the task is reported as an
            ArchiveIOError, since the pair may not have reached the vault.
        """
        task = self.archive_task
        if task is None:
            return None
        try:
            outcome = task.result(timeout=timeout)
        except FutureTimeout:
            return None
        except AskAIError as exc:
            return self._archive_failed(exc)
        except Exception as exc:
            error = ArchiveIOError(f"unexpected archival failure: {exc}")
            error.__cause__ = exc
            return self._archive_failed(error)
        finally:
            if task.done():
                self.archive_task = None

        if outcome.is_duplicate:
            self.state.status = "Conversation saved to vault (already in index)"
        else:
            self.state.status = "Conversation saved to vault"
        return ArchiveEvent(outcome=outcome)

    def _archive_failed(self, exc: AskAIError) -> ArchiveEvent:
        if isinstance(exc, ArchiveIOError):
            self.state.status = f"Failed to save conversation: {exc}"
        else:
            self.state.status = f"Conversation saved to vault, not indexed: {exc}"
        self._log.error("archival failed", exc_info=exc)
        return ArchiveEvent(error=exc)

    def close(self) -> None:
        """Cancel any session and wait for pending archival work."""
        self.cancel()
        self._executor.shutdown(wait=True)
