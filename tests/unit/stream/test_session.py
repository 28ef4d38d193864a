"""Tests for StreamSession: producer/consumer event flow, cancellation and teardown."""

from __future__ import annotations

import threading

import pytest

from askai.errors import StreamError
from askai.llm.client import GenerationRequest
from askai.stream.events import EndEvent, ErrorEvent, SessionState, TokenEvent
from askai.stream.session import StreamSession

REQUEST = GenerationRequest(model="ollama/gemma3:1b", prompt="What is AI?", temperature=1.5)
CHUNKS = ["AI ", "stands ", "for ", "Artificial Intelligence."]


def _from(chunks):
    def stream_fn(request):
        yield from chunks
    return stream_fn


def _drain(session: StreamSession) -> list:
    events = []
    while True:
        event = session.await_next_event()
        events.append(event)
        if not isinstance(event, TokenEvent):
            return events


@pytest.fixture
def sessions():
    """Track sessions so every producer thread is torn down after the test."""
    made: list[StreamSession] = []

    def make(stream_fn, **kwargs) -> StreamSession:
        s = StreamSession(REQUEST, stream_fn, **kwargs)
        made.append(s)
        return s

    yield make
    for s in made:
        s.teardown()
        s.join(timeout=2)


# ---------------------------------------------------------------------------
# Clean completion
# ---------------------------------------------------------------------------


def test_tokens_arrive_in_order_then_end(sessions) -> None:
    session = sessions(_from(CHUNKS))
    session.start()

    events = _drain(session)

    assert events == [TokenEvent(c) for c in CHUNKS] + [EndEvent()]
    assert session.state is SessionState.COMPLETED
    assert session.take_full_response() == "AI stands for Artificial Intelligence."


def test_full_response_is_taken_once(sessions) -> None:
    session = sessions(_from(["x"]))
    session.start()
    _drain(session)
    assert session.take_full_response() == "x"
    assert session.take_full_response() is None


def test_empty_chunks_are_dropped(sessions) -> None:
    session = sessions(_from(["a", "", "b"]))
    session.start()
    assert _drain(session) == [TokenEvent("a"), TokenEvent("b"), EndEvent()]


def test_zero_tokens_completes_with_empty_response(sessions) -> None:
    session = sessions(_from([]))
    session.start()

    assert _drain(session) == [EndEvent()]
    assert session.state is SessionState.COMPLETED
    assert session.take_full_response() == ""


def test_many_tokens_with_small_queue(sessions) -> None:
    chunks = [f"t{i} " for i in range(200)]
    session = sessions(_from(chunks), token_capacity=2)
    session.start()

    events = _drain(session)

    assert [e.text for e in events[:-1]] == chunks
    assert session.take_full_response() == "".join(chunks)


def test_await_after_end_returns_end_immediately(sessions) -> None:
    session = sessions(_from(["x"]))
    session.start()
    _drain(session)
    assert session.await_next_event() == EndEvent()
    assert session.await_next_event() == EndEvent()


def test_start_twice_raises(sessions) -> None:
    session = sessions(_from([]))
    session.start()
    with pytest.raises(RuntimeError, match="already started"):
        session.start()


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        StreamSession(REQUEST, _from([]), token_capacity=0)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_error_after_tokens(sessions) -> None:
    boom = ConnectionError("connection reset")

    def stream_fn(request):
        yield "partial "
        raise boom

    session = sessions(stream_fn)
    session.start()

    events = _drain(session)

    assert events[0] == TokenEvent("partial ")
    assert isinstance(events[1], ErrorEvent)
    assert isinstance(events[1].error, StreamError)
    assert "connection reset" in str(events[1].error)
    assert events[1].error.__cause__ is boom
    assert session.state is SessionState.ERRORED
    assert session.take_full_response() is None


def test_error_before_first_token(sessions) -> None:
    def stream_fn(request):
        raise ValueError("model 'nope' not found")

    session = sessions(stream_fn)
    session.start()

    [event] = _drain(session)
    assert isinstance(event, ErrorEvent)
    assert "not found" in str(event.error)
    assert session.state is SessionState.ERRORED


# ---------------------------------------------------------------------------
# Cancellation + teardown
# ---------------------------------------------------------------------------


def test_cancel_mid_stream(sessions) -> None:
    release = threading.Event()

    def stream_fn(request):
        yield "partial "
        release.wait(5)
        yield "never delivered"

    session = sessions(stream_fn)
    session.start()
    assert session.await_next_event() == TokenEvent("partial ")

    assert session.cancel() is True
    release.set()

    assert session.join(timeout=2)
    assert session.state is SessionState.CANCELED
    assert session.take_full_response() is None
    assert session.await_next_event() == EndEvent()


def test_cancel_after_completion_is_noop(sessions) -> None:
    session = sessions(_from(["x"]))
    session.start()
    _drain(session)
    assert session.cancel() is False
    assert session.state is SessionState.COMPLETED


def test_teardown_frees_producer_blocked_on_full_queue(sessions) -> None:
    def endless(request):
        while True:
            yield "x"

    session = sessions(endless, token_capacity=2)
    session.start()
    assert session.await_next_event() == TokenEvent("x")

    assert session.teardown() is True
    assert session.join(timeout=2)
    assert session.state is SessionState.CANCELED


def test_teardown_is_idempotent(sessions) -> None:
    session = sessions(_from(CHUNKS))
    session.start()
    _drain(session)

    assert session.teardown() is True
    assert session.teardown() is False
    assert session.torn_down
    assert session.state is SessionState.COMPLETED


def test_await_after_teardown_returns_end(sessions) -> None:
    release = threading.Event()

    def stream_fn(request):
        release.wait(5)
        yield "late"

    session = sessions(stream_fn)
    session.start()
    session.teardown()
    release.set()

    assert session.await_next_event() == EndEvent()
    assert session.join(timeout=2)


def test_teardown_before_start(sessions) -> None:
    session = sessions(_from(CHUNKS))
    assert session.teardown() is True
    assert session.state is SessionState.IDLE
    assert session.join(timeout=0)
