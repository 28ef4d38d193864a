"""Similarity store: one Qdrant collection of (id, vector, payload) records.

Cosine distance, fixed dimension. Every client failure is re-raised as
``StoreError`` with the original exception as ``__cause__``; nothing is
retried. The wrapper holds only the client handle, so it is safe to share
between threads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointStruct,
    VectorParams,
)

from askai.config import StoreCfg
from askai.errors import StoreError
from askai.models import SearchHit


def connect(cfg: StoreCfg) -> QdrantClient:
    """Open a Qdrant client for *cfg* (gRPC preferred, REST as fallback port).

    Raises:
        StoreError: If the client cannot be constructed.
    """
    try:
        return QdrantClient(
            host=cfg.host,
            port=cfg.port,
            grpc_port=cfg.grpc_port,
            prefer_grpc=cfg.prefer_grpc,
        )
    except Exception as exc:
        raise StoreError(f"failed to connect to Qdrant at {cfg.endpoint}: {exc}") from exc


class SimilarityStore:
    """Thin wrapper around one named Qdrant collection.

    Args:
        client: Open ``QdrantClient`` (remote, or ``QdrantClient(":memory:")`` in tests).
        collection: Collection name.
        dimension: Vector length of the collection.
        logger: Process logger; defaults to this module's logger.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection: str,
        dimension: int,
        logger: logging.Logger | None = None,
    ) -> None:
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self._client = client
        self.collection = collection
        self.dimension = dimension
        self._log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    def ensure_collection(self, dimension: int | None = None) -> bool:
        """Create the collection (cosine, *dimension*) if it does not exist.

        Idempotent: an existing collection is left untouched.

        Returns:
            True if the collection was created by this call.
        """
        if dimension is not None:
            self.dimension = dimension
        data = {"collection": self.collection, "dimension": self.dimension}

        with self._rpc("get collection"):
            if self._client.collection_exists(self.collection):
                self._log.info("collection already exists", extra={"data": data})
                return False

        try:
            self._client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
            )
        except Exception as exc:
            # Lost a creation race: someone else made it between the check and the create.
            with self._rpc("get collection"):
                if self._client.collection_exists(self.collection):
                    return False
            self._log.error("failed to create collection", exc_info=exc, extra={"data": data})
            raise StoreError(f"failed to create collection '{self.collection}': {exc}") from exc

        self._log.info("created collection", extra={"data": data})
        return True

    def reset_collection(self) -> None:
        """Delete the collection (missing is fine) and create it again."""
        with self._rpc("delete collection"):
            try:
                if self._client.collection_exists(self.collection):
                    self._client.delete_collection(collection_name=self.collection)
            except UnexpectedResponse as exc:
                if exc.status_code != 404:
                    raise
        self._log.info("collection deleted for reset", extra={"data": {"collection": self.collection}})
        self.ensure_collection()

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    def upsert(self, point_id: str, vector: list[float], payload: Mapping[str, Any]) -> None:
        """Write or overwrite one record. Visible to later searches eventually."""
        self._check_dimension(vector)
        data = {"point_id": point_id, "collection": self.collection}
        self._log.info("sending upsert request", extra={"data": data})

        with self._rpc("upsert"):
            self._client.upsert(
                collection_name=self.collection,
                points=[PointStruct(id=point_id, vector=vector, payload=dict(payload))],
                wait=True,
            )

        self._log.info("stored vector", extra={"data": data})

    def search(
        self,
        vector: list[float],
        limit: int,
        filter: Mapping[str, str] | None = None,
    ) -> list[SearchHit]:
        """Return up to *limit* records ordered by descending cosine similarity.

        Args:
            vector: Query vector (collection dimension).
            limit: Upper bound on results; fewer results do not prove absence.
            filter: Exact-match payload conditions, all of which must hold.
        """
        self._check_dimension(vector)
        query_filter = None
        if filter:
            query_filter = Filter(
                must=[FieldCondition(key=k, match=MatchValue(value=v)) for k, v in filter.items()]
            )

        with self._rpc("search"):
            response = self._client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=limit,
                query_filter=query_filter,
                with_payload=True,
            )

        hits = [
            SearchHit(id=str(p.id), score=float(p.score), payload=dict(p.payload or {}))
            for p in response.points
        ]
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits

    def count(self) -> int:
        """Exact number of records in the collection."""
        with self._rpc("count"):
            return self._client.count(collection_name=self.collection, exact=True).count

    def close(self) -> None:
        with self._rpc("close"):
            self._client.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self.dimension:
            raise StoreError(
                f"vector has {len(vector)} dimensions, collection "
                f"'{self.collection}' expects {self.dimension}"
            )

    @contextmanager
    def _rpc(self, op: str) -> Iterator[None]:
        try:
            yield
        except StoreError:
            raise
        except Exception as exc:
            self._log.error(f"{op} failed", exc_info=exc, extra={"data": {"collection": self.collection}})
            raise StoreError(f"{op} failed on collection '{self.collection}': {exc}") from exc
