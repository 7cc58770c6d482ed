"""
Qdrant Vector Store
===================

VectorBackend backed by a Qdrant collection.

qdrant-client is synchronous here, so calls run in the default executor
(same approach as FalkorDBClient). Point ids are UUIDv5 of the entity id,
which keeps them stable across runs; the entity id itself travels in the
payload.

Recall/latency: ``VectorSearchRequest.n_probe`` maps to ``hnsw_ef`` and
``exact=True`` forces a full scan.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional
from uuid import NAMESPACE_URL, uuid5

import structlog
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, SearchParams, VectorParams

from hybridkg.config import store_names
from hybridkg.storage.base import VectorBackend
from hybridkg.storage.models import Entity, RankedHit, VectorSearchRequest
from hybridkg.storage.vectors.index import METRICS, validate_vector

log = structlog.get_logger()

_DISTANCES = {
    "cosine": Distance.COSINE,
    "euclidean": Distance.EUCLID,
    "manhattan": Distance.MANHATTAN,
}


@dataclass
class QdrantConfig:
    """
    Qdrant connection settings.

    Environment Variables:
        QDRANT_HOST: default localhost
        QDRANT_PORT: default 6333
        QDRANT_COLLECTION: default from HYBRIDKG_ENV (hybridkg_test_entities)
    """
    host: str = field(default_factory=lambda: os.environ.get("QDRANT_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.environ.get("QDRANT_PORT", 6333)))
    collection_name: str = field(
        default_factory=lambda: os.environ.get(
            "QDRANT_COLLECTION", store_names().collection_name
        )
    )
    metric: str = "cosine"
    upsert_batch_size: int = 64

    def __post_init__(self):
        if self.metric not in METRICS:
            raise ValueError(f"metric must be one of {METRICS}, got {self.metric!r}")


def point_id(entity_id: str) -> str:
    """Stable Qdrant point id for an entity id."""
    return str(uuid5(NAMESPACE_URL, entity_id))


class QdrantVectorStore(VectorBackend):
    """
    Example:
        store = QdrantVectorStore(dimension=768)
        await store.connect()
        await store.ensure_collection()
        await store.upsert_entities(entities)
        hits = await store.search_vector(VectorSearchRequest(vec, limit=3))
    """

    def __init__(
        self,
        dimension: int,
        config: Optional[QdrantConfig] = None,
        client: Optional[Any] = None,
    ):
        self.dimension = dimension
        self.config = config or QdrantConfig()
        self._client = client

        log.info(
            f"QdrantVectorStore initialized - "
            f"host={self.config.host}:{self.config.port}, "
            f"collection={self.config.collection_name}, dim={dimension}"
        )

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))

    async def connect(self) -> None:
        if self._client is None:
            self._client = QdrantClient(host=self.config.host, port=self.config.port)
            log.info(f"Connected to Qdrant at {self.config.host}:{self.config.port}")

    async def close(self) -> None:
        if self._client is not None:
            await self._run(self._client.close)
            self._client = None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("Not connected to Qdrant. Call connect() first.")
        return self._client

    async def ensure_collection(self) -> bool:
        """Create the collection if missing. Returns True when it was created."""
        name = self.config.collection_name
        exists = await self._run(self.client.collection_exists, name)
        if exists:
            return False

        await self._run(
            self.client.create_collection,
            collection_name=name,
            vectors_config=VectorParams(
                size=self.dimension,
                distance=_DISTANCES[self.config.metric],
            ),
        )
        log.info(f"Created Qdrant collection: {name} (metric={self.config.metric})")
        return True

    async def drop_collection(self) -> bool:
        """Delete the collection. Returns False when it did not exist."""
        name = self.config.collection_name
        if not await self._run(self.client.collection_exists, name):
            return False
        await self._run(self.client.delete_collection, collection_name=name)
        log.info(f"Dropped Qdrant collection: {name}")
        return True

    async def count(self) -> int:
        name = self.config.collection_name
        if not await self._run(self.client.collection_exists, name):
            return 0
        result = await self._run(self.client.count, collection_name=name)
        return result.count

    async def upsert_entities(self, entities: Iterable[Entity]) -> int:
        """Validate and upsert entity vectors in batches."""
        points = []
        for entity in entities:
            validate_vector(entity.vector, self.dimension, context=f"entity {entity.id!r}")
            points.append(PointStruct(
                id=point_id(entity.id),
                vector=list(entity.vector),
                payload={"entity_id": entity.id},
            ))

        batch = self.config.upsert_batch_size
        for start in range(0, len(points), batch):
            await self._run(
                self.client.upsert,
                collection_name=self.config.collection_name,
                points=points[start:start + batch],
            )

        log.info(f"Upserted {len(points)} vectors into {self.config.collection_name}")
        return len(points)

    async def search_vector(self, request: VectorSearchRequest) -> List[RankedHit]:
        validate_vector(request.vector, self.dimension, context="query vector")

        params = SearchParams(hnsw_ef=request.n_probe, exact=request.exact)
        response = await self._run(
            self.client.query_points,
            collection_name=self.config.collection_name,
            query=list(request.vector),
            limit=request.limit,
            search_params=params,
            with_payload=True,
        )

        hits = []
        for rank, point in enumerate(response.points, start=1):
            payload = point.payload or {}
            hits.append(RankedHit(
                entity_id=payload.get("entity_id", str(point.id)),
                rank=rank,
                score=point.score,
            ))

        log.debug(f"Qdrant search -> {len(hits)} hits")
        return hits
