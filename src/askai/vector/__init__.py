"""askai similarity layer: Qdrant collection wrapper and Q&A deduplication."""

from askai.vector.dedup import DEDUP_CANDIDATES, QADedupService
from askai.vector.store import SimilarityStore, connect

__all__ = [
    "DEDUP_CANDIDATES",
    "QADedupService",
    "SimilarityStore",
    "connect",
]
