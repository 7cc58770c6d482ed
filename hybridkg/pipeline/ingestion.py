"""
Ingestion Pipeline
==================

Bulk, offline loading of entities and relationship edges.

Steps:
1. Validate: unique entity ids, known relationship types
2. Embed: every entity body without a vector goes through the embedding provider
3. Validate dimensions: every vector has exactly D components (no truncation)
4. Load: lexical index, vector index, graph, entity catalog

Validation runs before anything is written, so a defective batch leaves the
stores untouched. There is no update path: changes mean reset + re-ingest.

Usage:
    pipeline = IngestionPipeline(embedder, allowed_types=RELATIONSHIP_TYPES)
    result = await pipeline.ingest_memory(entities, edges, bm25, vectors, graph, catalog)
    log.info("Ingestion complete", **result.summary())
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from hybridkg.errors import DuplicateEntityError, SchemaError, UnknownRelationshipType, backend_errors
from hybridkg.storage.graph.memory import InMemoryCatalog, RelationshipGraph
from hybridkg.storage.graph.store import FalkorDBGraphStore
from hybridkg.storage.lexical.bm25 import BM25Index
from hybridkg.storage.models import Entity, RelationshipEdge
from hybridkg.storage.vectors.embeddings import EmbeddingProvider
from hybridkg.storage.vectors.index import VectorIndex, validate_vector
from hybridkg.storage.vectors.qdrant import QdrantVectorStore

log = structlog.get_logger()


@dataclass
class IngestionResult:
    """
    Result of one ingestion run.

    Attributes:
        backend: "memory" or "external"
        entities_loaded: Entities written to every store
        edges_loaded: Relationship edges written to the graph
        embeddings_created: Bodies embedded during this run
        dimension: Vector dimensionality D
        duration_seconds: Wall-clock time of the run
        relationship_types: Distinct edge types loaded
    """
    backend: str
    entities_loaded: int = 0
    edges_loaded: int = 0
    embeddings_created: int = 0
    dimension: int = 0
    duration_seconds: float = 0.0
    relationship_types: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        """Return summary for logging."""
        return {
            "backend": self.backend,
            "entities": self.entities_loaded,
            "edges": self.edges_loaded,
            "embeddings": self.embeddings_created,
            "dimension": self.dimension,
            "relationship_types": len(self.relationship_types),
            "duration_s": round(self.duration_seconds, 3),
        }


class IngestionPipeline:
    """
    Validates, embeds and loads a corpus.

    Args:
        embedder: Provider used for bodies without a precomputed vector
        allowed_types: Relationship types accepted (None = any non-empty type)
        embed_concurrency: Max embedding requests in flight
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        allowed_types: Optional[Iterable[str]] = None,
        embed_concurrency: int = 4,
    ):
        self.embedder = embedder
        self.allowed_types: Optional[Set[str]] = set(allowed_types) if allowed_types else None
        self.embed_concurrency = embed_concurrency

    @property
    def dimension(self) -> int:
        return self.embedder.dimension

    # ------------------------------------------------------------------
    # Validation and embedding
    # ------------------------------------------------------------------

    def validate(self, entities: Sequence[Entity], edges: Sequence[RelationshipEdge]) -> None:
        """
        Check ids and relationship types without touching any store.

        Raises:
            DuplicateEntityError: two entities share an id
            UnknownRelationshipType: edge type outside ``allowed_types``
            SchemaError: edge with an empty endpoint or type
        """
        seen = set()
        for entity in entities:
            if not entity.id:
                raise SchemaError("Entity with empty id")
            if entity.id in seen:
                raise DuplicateEntityError(entity.id)
            seen.add(entity.id)

        for edge in edges:
            if not edge.source or not edge.target:
                raise SchemaError(f"Edge with empty endpoint: {edge!r}")
            if not edge.type:
                raise SchemaError(f"Edge without relationship type: {edge!r}")
            if self.allowed_types is not None and edge.type not in self.allowed_types:
                raise UnknownRelationshipType(edge.type)

    async def prepare(
        self,
        entities: Iterable[Entity],
        edges: Iterable[RelationshipEdge]
    ) -> Tuple[List[Entity], List[RelationshipEdge], int]:
        """
        Validate, embed missing vectors and check every dimension.

        Returns:
            (entities with vectors, edges, number of embeddings created)
        """
        entities = list(entities)
        edges = list(edges)
        self.validate(entities, edges)

        missing = [i for i, e in enumerate(entities) if e.vector is None]
        if missing:
            log.info(f"Embedding {len(missing)} entity bodies (D={self.dimension})")
            vectors = await self.embedder.embed_batch(
                [entities[i].body for i in missing],
                concurrency=self.embed_concurrency,
            )
            for i, vector in zip(missing, vectors):
                entities[i] = replace(entities[i], vector=list(vector))

        for entity in entities:
            validate_vector(entity.vector, self.dimension, context=f"entity {entity.id!r}")

        return entities, edges, len(missing)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def ingest_memory(
        self,
        entities: Iterable[Entity],
        edges: Iterable[RelationshipEdge],
        lexical: BM25Index,
        vector: VectorIndex,
        graph: RelationshipGraph,
        catalog: InMemoryCatalog,
    ) -> IngestionResult:
        """Load the corpus into the in-memory stores."""
        started = time.perf_counter()
        entities, edges, embedded = await self.prepare(entities, edges)

        lexical.add_entities(entities)
        vector.add_entities(entities)
        vector.build()
        graph.add_edges(edges)
        catalog.add_entities(entities)

        return self._finish("memory", entities, edges, embedded, started)

    async def ingest_external(
        self,
        entities: Iterable[Entity],
        edges: Iterable[RelationshipEdge],
        graph_store: FalkorDBGraphStore,
        vector_store: QdrantVectorStore,
    ) -> IngestionResult:
        """Load the corpus into FalkorDB (text, graph, catalog) and Qdrant (vectors)."""
        started = time.perf_counter()
        entities, edges, embedded = await self.prepare(entities, edges)

        with backend_errors("graph", "FalkorDB load"):
            await graph_store.ensure_schema()
            await graph_store.load_entities(entities)
            await graph_store.load_edges(edges)

        with backend_errors("vector", "Qdrant upsert"):
            await vector_store.ensure_collection()
            await vector_store.upsert_entities(entities)

        return self._finish("external", entities, edges, embedded, started)

    def _finish(
        self,
        backend: str,
        entities: List[Entity],
        edges: List[RelationshipEdge],
        embedded: int,
        started: float
    ) -> IngestionResult:
        result = IngestionResult(
            backend=backend,
            entities_loaded=len(entities),
            edges_loaded=len(edges),
            embeddings_created=embedded,
            dimension=self.dimension,
            duration_seconds=time.perf_counter() - started,
            relationship_types=sorted({e.type for e in edges}),
        )
        log.info(
            f"Ingestion complete ({backend}) - "
            f"{result.entities_loaded} entities, {result.edges_loaded} edges, "
            f"{result.embeddings_created} embeddings in {result.duration_seconds:.2f}s"
        )
        return result
