"""askai streaming layer: one producer per session, one consumer driver."""

from askai.stream.driver import ConversationState, SessionDriver
from askai.stream.events import ArchiveEvent, EndEvent, ErrorEvent, SessionState, TokenEvent
from askai.stream.session import StreamSession

__all__ = [
    "ArchiveEvent",
    "ConversationState",
    "EndEvent",
    "ErrorEvent",
    "SessionDriver",
    "SessionState",
    "StreamSession",
    "TokenEvent",
]
