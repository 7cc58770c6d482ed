"""
In-memory Vector Index
======================

Nearest-neighbour search over entity embeddings with numpy.

Metrics:
- cosine (default): similarity, invariant to vector magnitude
- euclidean: L2 distance
- manhattan: L1 distance

Partitioning:
- n_lists == 1: exact (exhaustive) search
- n_lists > 1: IVF. Vectors are clustered with k-means at build time; a query
  scans only the ``n_probe`` closest partitions. Higher n_probe = better
  recall, more work. ``VectorSearchRequest.exact`` bypasses partitioning.

Scores are oriented so that higher is better (similarity, or negated
distance). Ties are broken by insertion order.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import structlog

from hybridkg.errors import DimensionMismatch, DuplicateEntityError
from hybridkg.storage.base import VectorBackend
from hybridkg.storage.models import Entity, RankedHit, VectorSearchRequest

log = structlog.get_logger()

METRICS = ("cosine", "euclidean", "manhattan")


def validate_vector(vector: Optional[Sequence[float]], dimension: int, context: str = "vector") -> None:
    """Raise DimensionMismatch unless ``vector`` has exactly ``dimension`` components."""
    actual = 0 if vector is None else len(vector)
    if actual != dimension:
        raise DimensionMismatch(expected=dimension, actual=actual, context=context)


def _scores(matrix: np.ndarray, query: np.ndarray, metric: str) -> np.ndarray:
    """Higher-is-better scores of every row of ``matrix`` against ``query``."""
    if metric == "cosine":
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        with np.errstate(divide="ignore", invalid="ignore"):
            sims = np.where(norms > 0, dots / np.where(norms > 0, norms, 1.0), 0.0)
        return sims
    if metric == "euclidean":
        return -np.linalg.norm(matrix - query, axis=1)
    return -np.abs(matrix - query).sum(axis=1)


class VectorIndex(VectorBackend):
    """
    Exact or IVF-partitioned vector index.

    Example:
        >>> index = VectorIndex(dimension=768, metric="cosine")
        >>> index.add_entities(entities)
        >>> hits = await index.search_vector(VectorSearchRequest(query_vec, limit=3))
    """

    def __init__(
        self,
        dimension: int,
        metric: str = "cosine",
        n_lists: int = 1,
        n_probe: int = 1,
        kmeans_iterations: int = 20,
    ):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        if metric not in METRICS:
            raise ValueError(f"metric must be one of {METRICS}, got {metric!r}")
        if n_lists < 1:
            raise ValueError(f"n_lists must be >= 1, got {n_lists}")
        if n_probe < 1:
            raise ValueError(f"n_probe must be >= 1, got {n_probe}")

        self.dimension = dimension
        self.metric = metric
        self.n_lists = n_lists
        self.n_probe = n_probe
        self.kmeans_iterations = kmeans_iterations

        self._ids: List[str] = []
        self._positions: Dict[str, int] = {}
        self._rows: List[List[float]] = []

        self._matrix: Optional[np.ndarray] = None
        self._centroids: Optional[np.ndarray] = None
        self._assignments: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def is_partitioned(self) -> bool:
        self._ensure_built()
        return self._centroids is not None

    def add_entities(self, entities: Iterable[Entity]) -> int:
        """Add entity vectors. Every vector must have exactly ``dimension`` components."""
        added = 0
        for entity in entities:
            self.add(entity.id, entity.vector)
            added += 1
        log.debug(f"VectorIndex: added {added} vectors (total={len(self)})")
        return added

    def add(self, entity_id: str, vector: Sequence[float]) -> None:
        validate_vector(vector, self.dimension, context=f"entity {entity_id!r}")
        if entity_id in self._positions:
            raise DuplicateEntityError(entity_id)

        self._positions[entity_id] = len(self._ids)
        self._ids.append(entity_id)
        self._rows.append([float(x) for x in vector])
        self._matrix = None

    def clear(self) -> None:
        self._ids.clear()
        self._positions.clear()
        self._rows.clear()
        self._matrix = None
        self._centroids = None
        self._assignments = None

    def build(self) -> None:
        """Materialise the matrix and, when partitioned, the IVF lists."""
        if not self._rows:
            self._matrix = np.zeros((0, self.dimension))
            self._centroids = None
            self._assignments = None
            return

        self._matrix = np.asarray(self._rows, dtype=np.float64)
        lists = min(self.n_lists, len(self._rows))
        if lists > 1:
            self._centroids, self._assignments = self._kmeans(lists)
            log.info(
                f"VectorIndex built - {len(self)} vectors, {lists} partitions, "
                f"metric={self.metric}"
            )
        else:
            self._centroids = None
            self._assignments = None

    def _ensure_built(self) -> None:
        if self._matrix is None:
            self.build()

    def _kmeans(self, lists: int):
        """Deterministic Lloyd's k-means; centroids seeded from evenly spaced rows."""
        data = self._matrix
        if self.metric == "cosine":
            norms = np.linalg.norm(data, axis=1, keepdims=True)
            data = data / np.where(norms > 0, norms, 1.0)

        seeds = np.linspace(0, len(data) - 1, num=lists).round().astype(int)
        centroids = data[seeds].copy()
        assignments = np.zeros(len(data), dtype=int)

        for _ in range(self.kmeans_iterations):
            distances = np.linalg.norm(data[:, None, :] - centroids[None, :, :], axis=2)
            new_assignments = distances.argmin(axis=1)
            for c in range(lists):
                members = data[new_assignments == c]
                if len(members):
                    centroids[c] = members.mean(axis=0)
            if np.array_equal(new_assignments, assignments):
                break
            assignments = new_assignments

        return centroids, assignments

    def _candidates(self, query: np.ndarray, n_probe: int) -> np.ndarray:
        probe = _scores(self._centroids, query, self.metric)
        # best partitions first, ties by partition number
        order = np.lexsort((np.arange(len(probe)), -probe))[:n_probe]
        mask = np.isin(self._assignments, order)
        return np.flatnonzero(mask)

    def search(self, request: VectorSearchRequest) -> List[RankedHit]:
        """Synchronous search; see ``search_vector``."""
        validate_vector(request.vector, self.dimension, context="query vector")
        self._ensure_built()
        if not self._ids:
            return []

        query = np.asarray(request.vector, dtype=np.float64)
        if self._centroids is not None and not request.exact:
            candidates = self._candidates(query, request.n_probe or self.n_probe)
        else:
            candidates = np.arange(len(self._ids))

        scores = _scores(self._matrix[candidates], query, self.metric)
        order = np.lexsort((candidates, -scores))[: request.limit]

        return [
            RankedHit(
                entity_id=self._ids[int(candidates[i])],
                rank=rank,
                score=float(scores[i]),
            )
            for rank, i in enumerate(order, start=1)
        ]

    async def search_vector(self, request: VectorSearchRequest) -> List[RankedHit]:
        await asyncio.sleep(0)
        return self.search(request)
