"""
Test IngestionPipeline
======================

Validation, embedding of missing vectors and loading into the in-memory and
external stores.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from hybridkg.errors import (
    BackendUnavailableError,
    DimensionMismatch,
    DuplicateEntityError,
    SchemaError,
    UnknownRelationshipType,
)
from hybridkg.pipeline import IngestionPipeline, IngestionResult
from hybridkg.storage.graph.memory import InMemoryCatalog, RelationshipGraph
from hybridkg.storage.lexical.bm25 import BM25Index
from hybridkg.storage.models import Entity, RelationshipEdge, TextSearchRequest
from hybridkg.storage.vectors.index import VectorIndex


@pytest.fixture
def memory_stores():
    return {
        "lexical": BM25Index(),
        "vector": VectorIndex(dimension=3),
        "graph": RelationshipGraph(),
        "catalog": InMemoryCatalog(),
    }


class TestValidation:
    """Defective batches are rejected before any store is touched."""

    def test_duplicate_entity(self, embedder):
        pipeline = IngestionPipeline(embedder)
        entities = [Entity(id="a", body="x"), Entity(id="a", body="y")]

        with pytest.raises(DuplicateEntityError):
            pipeline.validate(entities, [])

    def test_unknown_relationship_type(self, embedder):
        pipeline = IngestionPipeline(embedder, allowed_types=["works_with"])

        with pytest.raises(UnknownRelationshipType):
            pipeline.validate([], [RelationshipEdge("a", "b", "likes")])

    @pytest.mark.parametrize("edge", [
        RelationshipEdge("", "b", "works_with"),
        RelationshipEdge("a", "", "works_with"),
        RelationshipEdge("a", "b", ""),
    ])
    def test_malformed_edge(self, embedder, edge):
        with pytest.raises(SchemaError):
            IngestionPipeline(embedder).validate([], [edge])

    def test_empty_entity_id(self, embedder):
        with pytest.raises(SchemaError):
            IngestionPipeline(embedder).validate([Entity(id="", body="x")], [])

    @pytest.mark.asyncio
    async def test_nothing_written_on_failure(self, embedder, memory_stores, entities):
        pipeline = IngestionPipeline(embedder, allowed_types=["works_with"])
        edges = [RelationshipEdge("people/emma", "people/jack", "likes")]

        with pytest.raises(UnknownRelationshipType):
            await pipeline.ingest_memory(entities, edges, **memory_stores)

        assert len(memory_stores["lexical"]) == 0
        assert len(memory_stores["catalog"]) == 0


class TestPrepare:
    """Embedding and dimension checks."""

    @pytest.mark.asyncio
    async def test_embeds_only_missing_vectors(self, embedder):
        entities = [
            Entity(id="a", body="first", vector=[1.0, 0.0, 0.0]),
            Entity(id="b", body="second"),
        ]
        embedder.vectors["second"] = [0.0, 1.0, 0.0]

        prepared, _, created = await IngestionPipeline(embedder).prepare(entities, [])

        assert created == 1
        assert embedder.calls == ["second"]
        assert prepared[1].vector == [0.0, 1.0, 0.0]
        # inputs are not mutated
        assert entities[1].vector is None

    @pytest.mark.asyncio
    async def test_wrong_precomputed_dimension(self, embedder):
        entities = [Entity(id="a", body="x", vector=[1.0, 0.0])]

        with pytest.raises(DimensionMismatch) as exc:
            await IngestionPipeline(embedder).prepare(entities, [])

        assert "entity 'a'" in str(exc.value)


class TestIngestMemory:
    """Load into BM25Index, VectorIndex, RelationshipGraph, InMemoryCatalog."""

    @pytest.mark.asyncio
    async def test_all_stores_loaded(self, embedder, memory_stores, entities, edges):
        result = await IngestionPipeline(embedder).ingest_memory(entities, edges, **memory_stores)

        assert isinstance(result, IngestionResult)
        assert result.backend == "memory"
        assert result.entities_loaded == 5
        assert result.edges_loaded == 4
        assert result.embeddings_created == 0
        assert result.dimension == 3
        assert result.relationship_types == ["collaborates_with", "works_on", "works_with"]

        assert len(memory_stores["lexical"]) == 5
        assert len(memory_stores["vector"]) == 5
        assert len(memory_stores["graph"]) == 4
        assert len(memory_stores["catalog"]) == 5

        hits = await memory_stores["lexical"].search_text(TextSearchRequest("neural", limit=3))
        assert [h.entity_id for h in hits] == ["people/emma"]

    def test_summary(self):
        result = IngestionResult(backend="memory", entities_loaded=10, edges_loaded=21,
                                 relationship_types=["a", "b"], duration_seconds=0.12345)

        summary = result.summary()

        assert summary["entities"] == 10
        assert summary["relationship_types"] == 2
        assert summary["duration_s"] == 0.123


class TestIngestExternal:
    """Load into FalkorDB and Qdrant (mocked)."""

    @pytest.mark.asyncio
    async def test_calls_in_order(self, embedder, entities, edges):
        calls = []
        graph_store = MagicMock()
        for name in ("ensure_schema", "load_entities", "load_edges"):
            setattr(graph_store, name, AsyncMock(side_effect=lambda *a, n=name: calls.append(n)))
        vector_store = MagicMock()
        for name in ("ensure_collection", "upsert_entities"):
            setattr(vector_store, name, AsyncMock(side_effect=lambda *a, n=name: calls.append(n)))

        result = await IngestionPipeline(embedder).ingest_external(
            entities, edges, graph_store, vector_store
        )

        assert calls == [
            "ensure_schema", "load_entities", "load_edges",
            "ensure_collection", "upsert_entities",
        ]
        assert result.backend == "external"
        loaded = graph_store.load_entities.call_args.args[0]
        assert [e.id for e in loaded] == [e.id for e in entities]

    @pytest.mark.asyncio
    async def test_driver_error_names_store(self, embedder, entities, edges):
        cause = ConnectionError("Connection refused")
        graph_store = MagicMock()
        graph_store.ensure_schema = AsyncMock()
        graph_store.load_entities = AsyncMock(side_effect=cause)
        vector_store = MagicMock()
        vector_store.ensure_collection = AsyncMock()

        with pytest.raises(BackendUnavailableError) as exc:
            await IngestionPipeline(embedder).ingest_external(
                entities, edges, graph_store, vector_store
            )

        assert exc.value.stage == "graph"
        assert exc.value.cause is cause
        assert "FalkorDB load failed" in str(exc.value)
        vector_store.ensure_collection.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_schema_errors_pass_through(self, embedder, entities, edges):
        graph_store = MagicMock()
        graph_store.ensure_schema = AsyncMock()
        graph_store.load_entities = AsyncMock()
        graph_store.load_edges = AsyncMock(side_effect=UnknownRelationshipType("likes"))

        with pytest.raises(UnknownRelationshipType):
            await IngestionPipeline(embedder).ingest_external(
                entities, edges, graph_store, MagicMock()
            )
