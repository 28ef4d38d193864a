"""Q&A deduplication: store a pair in the similarity index unless it is already there.

Embeddings are only a candidate filter. A pair counts as already stored when
one of the top candidates carries exactly the same question *and* answer
strings; the similarity score is never used as the equality test.

The local archive and the similarity index are written independently. A
failed dedup-check or upsert skips the remote write but still archives the
pair, so the two can diverge (archived but not indexed). A failed dedup-check
never falls through to an upsert.
"""

from __future__ import annotations

import logging
import uuid

from askai.errors import ArchiveIOError, EmbeddingError, StoreError
from askai.llm.embedder import BaseEmbedder
from askai.models import QA_PAIR_TYPE, QAPair, ReindexReport, StoreOutcome, StoreStatus, utc_now
from askai.vault import QAArchive
from askai.vector.store import SimilarityStore

DEDUP_CANDIDATES = 5


class QADedupService:
    """Compose embedder + similarity store + local archive.

    Args:
        embedder: Text embedder whose dimension matches the store's collection.
        store: Similarity store holding ``qa_pair`` records.
        archive: Local JSON archive that receives every call's pair.
        logger: Process logger.
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        store: SimilarityStore,
        archive: QAArchive,
        logger: logging.Logger | None = None,
    ) -> None:
        if embedder.dimensions != store.dimension:
            raise ValueError(
                f"embedder produces {embedder.dimensions}-d vectors but collection "
                f"'{store.collection}' is {store.dimension}-d"
            )
        self._embedder = embedder
        self._store = store
        self._archive = archive
        self._log = logger or logging.getLogger(__name__)

    def store_if_new(self, question: str, answer: str) -> StoreOutcome:
        """Index (*question*, *answer*) unless already indexed; always archive it.

        Returns:
            StoreOutcome with STORED (and the new point id) or ALREADY_EXISTS.

        Raises:
            EmbeddingError: Question or answer embedding failed (no upsert
                done). The pair was archived.
            StoreError: Dedup search or upsert failed (no further write done).
                The pair was archived.
            ArchiveIOError: The archive append failed, so the pair is not in
                the vault. If the remote half also failed, that error is this
                one's ``__context__``.
        """
        pair = QAPair(question=question, answer=answer)

        try:
            outcome = self.index_pair(question, answer)
        except (EmbeddingError, StoreError):
            self._archive_pair(pair)
            raise

        self._archive_pair(pair)
        return outcome

    def _archive_pair(self, pair: QAPair) -> None:
        try:
            count = self._archive.append(pair)
        except ArchiveIOError as exc:
            self._log.error("failed to append to Q&A archive", exc_info=exc,
                            extra={"data": {"path": str(self._archive.path)}})
            raise
        self._log.info("archived qa pair", extra={"data": {"entries": count}})

    def index_pair(self, question: str, answer: str) -> StoreOutcome:
        """Remote half of ``store_if_new``: dedup-check then upsert. Never touches the archive."""
        question_vec = self._embedder.embed(question)

        if self._exists(question, answer, question_vec):
            self._log.info("qa pair already exists in index", extra={"data": {"question": question}})
            return StoreOutcome(status=StoreStatus.ALREADY_EXISTS)

        # The answer vector is computed for parity with the question vector but
        # only the question vector is persisted.
        answer_vec = self._embedder.embed(answer)

        point_id = str(uuid.uuid4())
        self._log.info(
            "storing qa pair",
            extra={"data": {
                "question": question,
                "question_vector_size": len(question_vec),
                "answer_vector_size": len(answer_vec),
            }},
        )
        self._store.upsert(
            point_id,
            question_vec,
            {
                "type": QA_PAIR_TYPE,
                "question": question,
                "answer": answer,
                "stored_at": utc_now().isoformat(),
                "vector_type": "question",
            },
        )
        return StoreOutcome(status=StoreStatus.STORED, point_id=point_id)

    def reindex_archive(self) -> ReindexReport:
        """Push every archived pair into the index, skipping ones already there.

        Entries with an empty question or answer are skipped. A per-entry
        embedding or store failure is logged and counted; the walk continues.

        Raises:
            ArchiveIOError: If the archive cannot be read.
        """
        report = ReindexReport()
        pairs = self._archive.load()
        for i, pair in enumerate(pairs):
            if not pair.question or not pair.answer:
                self._log.warning("skipping empty qa pair", extra={"data": {"index": i}})
                report.skipped += 1
                continue
            try:
                outcome = self.index_pair(pair.question, pair.answer)
            except (EmbeddingError, StoreError) as exc:
                self._log.error("failed to index qa pair", exc_info=exc, extra={"data": {"index": i}})
                report.failed += 1
                continue
            if outcome.is_duplicate:
                report.duplicates += 1
            else:
                report.indexed += 1

        self._log.info("reindex finished", extra={"data": {
            "indexed": report.indexed,
            "duplicates": report.duplicates,
            "skipped": report.skipped,
            "failed": report.failed,
        }})
        return report

    def _exists(self, question: str, answer: str, question_vec: list[float]) -> bool:
        hits = self._store.search(question_vec, DEDUP_CANDIDATES, filter={"type": QA_PAIR_TYPE})
        for hit in hits:
            if hit.payload.get("question") == question and hit.payload.get("answer") == answer:
                return True
        return False
