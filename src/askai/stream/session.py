"""One request/response streaming interaction with the generation service.

Threading model:
  - exactly one producer thread per session; it is the only writer of the
    token, error and full-response queues and the only one that "closes"
    them (by putting ``_CLOSED`` on the token queue after its last send);
  - exactly one consumer (the session driver) calls ``await_next_event()``,
    ``cancel()`` and ``teardown()``.

Order on the token queue is: tokens in emission order, then ``_CLOSED``. The
full response (success) or the error (failure) is placed on its own queue
*before* ``_CLOSED``, so the consumer always sees it after the last token.

Cancellation is cooperative: the producer checks the stop event before every
emission and while waiting for room on a full token queue. An in-flight
network read is not interrupted; the next emission is suppressed.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable

from askai.errors import StreamError
from askai.llm.client import GenerationRequest
from askai.stream.events import EndEvent, ErrorEvent, SessionState, StreamEvent, TokenEvent

StreamFn = Callable[[GenerationRequest], Iterable[str]]

TOKEN_CAPACITY = 64

# How long a blocked put/get waits before re-checking the stop/teardown flags.
_POLL_INTERVAL = 0.05

_CLOSED = object()


class StreamSession:
    """A single streaming session: ``IDLE → STREAMING → COMPLETED | ERRORED | CANCELED``.

    Sessions are never reused; a new question needs a new session.

    Args:
        request: Model, prompt and temperature for the generation call.
        stream_fn: Callable returning an iterable of text chunks for *request*.
        token_capacity: Bound of the token queue (producer blocks when full).
        logger: Process logger.
    """

    def __init__(
        self,
        request: GenerationRequest,
        stream_fn: StreamFn,
        token_capacity: int = TOKEN_CAPACITY,
        logger: logging.Logger | None = None,
    ) -> None:
        if token_capacity < 1:
            raise ValueError("token_capacity must be >= 1")
        self.request = request
        self._stream_fn = stream_fn
        self._log = logger or logging.getLogger(__name__)

        self._tokens: queue.Queue[object] = queue.Queue(maxsize=token_capacity)
        self._errors: queue.Queue[StreamError] = queue.Queue(maxsize=1)
        self._full_response: queue.Queue[str] = queue.Queue(maxsize=1)
        self._stop = threading.Event()

        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._teardown_lock = threading.Lock()
        self._torn_down = False
        self._drained = False
        self._producer: threading.Thread | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def _finish(self, terminal: SessionState) -> bool:
        """Move STREAMING → *terminal*. Only the first caller wins."""
        with self._state_lock:
            if self._state is not SessionState.STREAMING:
                return False
            self._state = terminal
        self._log.info("stream session finished", extra={"data": {"state": terminal.value}})
        return True

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Move IDLE → STREAMING and launch the producer thread."""
        with self._state_lock:
            if self._state is not SessionState.IDLE:
                raise RuntimeError(f"session already started (state: {self._state.value})")
            self._state = SessionState.STREAMING

        self._log.info(
            "starting stream",
            extra={"data": {
                "model": self.request.model,
                "temperature": self.request.temperature,
                "prompt_length": len(self.request.prompt),
            }},
        )
        self._producer = threading.Thread(
            target=self._produce, name="askai-stream-producer", daemon=True
        )
        self._producer.start()

    def await_next_event(self) -> StreamEvent:
        """Block until the next token, the clean end, or the error.

        After the end has been observed, or after teardown, returns
        ``EndEvent`` immediately instead of blocking again.
        """
        if self._drained or self._torn_down:
            return EndEvent()

        while True:
            try:
                item = self._tokens.get(timeout=_POLL_INTERVAL)
                break
            except queue.Empty:
                if self._torn_down:
                    return EndEvent()

        if item is not _CLOSED:
            return TokenEvent(item)  # type: ignore[arg-type]

        self._drained = True
        try:
            return ErrorEvent(self._errors.get_nowait())
        except queue.Empty:
            pass
        if self._state is SessionState.ERRORED:
            return ErrorEvent(StreamError("stream failed without an error message"))
        return EndEvent()

    def take_full_response(self) -> str | None:
        """Return the aggregated text once (None unless the session completed)."""
        try:
            return self._full_response.get_nowait()
        except queue.Empty:
            return None

    def cancel(self) -> bool:
        """Cancel a streaming session and tear it down.

        Returns:
            True if this call moved the session to CANCELED.
        """
        canceled = self._finish(SessionState.CANCELED)
        self.teardown()
        return canceled

    def teardown(self) -> bool:
        """Stop the producer and release the queues. Safe to call any number of times.

        A session still streaming when torn down ends as CANCELED.

        Returns:
            True on the first call, False on every later one.
        """
        with self._teardown_lock:
            if self._torn_down:
                return False
            self._torn_down = True

        self._finish(SessionState.CANCELED)
        self._stop.set()
        # Free a producer blocked on a full queue; nobody reads these any more.
        while True:
            try:
                self._tokens.get_nowait()
            except queue.Empty:
                break
        return True

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the producer thread. Returns True if it has exited."""
        if self._producer is None:
            return True
        self._producer.join(timeout)
        return not self._producer.is_alive()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def _produce(self) -> None:
        parts: list[str] = []
        try:
            for chunk in self._stream_fn(self.request):
                if self._stop.is_set():
                    break
                if not chunk:
                    continue
                if not self._send(chunk):
                    break
                parts.append(chunk)
        except Exception as exc:
            self._log.error("stream failed", exc_info=exc, extra={"data": {"model": self.request.model}})
            error = StreamError(str(exc) or type(exc).__name__)
            error.__cause__ = exc
            self._fail(error)
            return

        if self._stop.is_set():
            # Canceled: partial text is discarded.
            self._close()
            return

        if self._finish(SessionState.COMPLETED):
            self._full_response.put_nowait("".join(parts))
        self._close()

    def _send(self, token: str) -> bool:
        """Put *token* on the queue unless the session is stopped first."""
        while not self._stop.is_set():
            try:
                self._tokens.put(token, timeout=_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _fail(self, error: StreamError) -> None:
        if self._finish(SessionState.ERRORED):
            try:
                self._errors.put_nowait(error)
            except queue.Full:
                self._log.warning("error channel full; error not delivered", extra={"data": {"error": str(error)}})
        self._close()

    def _close(self) -> None:
        while True:
            try:
                self._tokens.put(_CLOSED, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                if self._stop.is_set():
                    return
