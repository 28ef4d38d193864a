"""Domain models shared by the archive, the similarity store and the driver."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

QA_PAIR_TYPE = "qa_pair"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Fractional seconds of any length; fromisoformat on 3.10 only takes 3 or 6 digits.
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 / RFC 3339 timestamp.

    Accepts a trailing "Z" and fractional seconds of any precision (nanosecond
    timestamps are truncated to microseconds).

    Raises:
        ValueError: If *value* is not a timestamp.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass
class QAPair:
    """One question/answer exchange. Identity is the exact (question, answer) pair."""

    question: str
    answer: str
    created_at: datetime = field(default_factory=utc_now)

    def to_archive_dict(self) -> dict[str, str]:
        return {
            "question": self.question,
            "answer": self.answer,
            "time": self.created_at.isoformat(),
        }

    @classmethod
    def from_archive_dict(cls, raw: dict[str, Any]) -> QAPair:
        """Build a pair from one archive entry.

        Raises:
            ValueError: If the entry's "time" is not a timestamp.
        """
        created = raw.get("time")
        return cls(
            question=str(raw.get("question", "")),
            answer=str(raw.get("answer", "")),
            created_at=parse_timestamp(str(created)) if created else utc_now(),
        )


@dataclass
class SearchHit:
    """A single similarity-store search result.

    Attributes:
        id: Point identifier as stored in the collection.
        score: Cosine similarity (higher = more similar).
        payload: String-keyed payload of the point (may be empty).
    """

    id: str
    score: float
    payload: dict[str, Any] = field(default_factory=dict)


class StoreStatus(str, Enum):
    STORED = "stored"
    ALREADY_EXISTS = "already_exists"


@dataclass
class StoreOutcome:
    """Result of a successful ``store_if_new`` call.

    Attributes:
        status: Whether a new record was written or an identical pair was found.
        point_id: Identifier of the new record (None for duplicates).
    """

    status: StoreStatus
    point_id: str | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.status is StoreStatus.ALREADY_EXISTS


@dataclass
class ReindexReport:
    """Counters for a full archive re-index run."""

    indexed: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.indexed + self.duplicates + self.skipped + self.failed
