"""
Test QdrantVectorStore
======================

Collection management and search against a mocked QdrantClient.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from hybridkg.errors import DimensionMismatch
from hybridkg.storage.models import Entity, VectorSearchRequest
from hybridkg.storage.vectors.qdrant import QdrantConfig, QdrantVectorStore, point_id


@pytest.fixture
def client():
    client = MagicMock()
    client.collection_exists.return_value = True
    return client


@pytest.fixture
def store(client):
    config = QdrantConfig(host="qdrant", port=6333, collection_name="people", upsert_batch_size=2)
    return QdrantVectorStore(dimension=3, config=config, client=client)


class TestQdrantConfig:
    """Test QdrantConfig."""

    def test_invalid_metric(self):
        with pytest.raises(ValueError, match="metric"):
            QdrantConfig(metric="dot")

    def test_point_id_stable(self):
        assert point_id("people/alice") == point_id("people/alice")
        assert point_id("people/alice") != point_id("people/bob")


class TestQdrantVectorStore:
    """Test QdrantVectorStore operations."""

    @pytest.mark.asyncio
    async def test_search(self, store, client):
        client.query_points.return_value = SimpleNamespace(points=[
            SimpleNamespace(id="u1", payload={"entity_id": "people/alice"}, score=0.98),
            SimpleNamespace(id="u2", payload={"entity_id": "people/carol"}, score=0.91),
        ])

        hits = await store.search_vector(VectorSearchRequest([1.0, 0.0, 0.0], limit=2, n_probe=64))

        assert [(h.entity_id, h.rank) for h in hits] == [("people/alice", 1), ("people/carol", 2)]
        kwargs = client.query_points.call_args.kwargs
        assert kwargs["collection_name"] == "people"
        assert kwargs["limit"] == 2
        assert kwargs["search_params"].hnsw_ef == 64

    @pytest.mark.asyncio
    async def test_search_dimension_mismatch(self, store, client):
        with pytest.raises(DimensionMismatch):
            await store.search_vector(VectorSearchRequest([1.0, 0.0], limit=2))
        client.query_points.assert_not_called()

    @pytest.mark.asyncio
    async def test_ensure_collection_creates_once(self, store, client):
        client.collection_exists.return_value = False

        assert await store.ensure_collection() is True
        params = client.create_collection.call_args.kwargs["vectors_config"]
        assert params.size == 3

        client.collection_exists.return_value = True
        assert await store.ensure_collection() is False

    @pytest.mark.asyncio
    async def test_upsert_in_batches(self, store, client):
        entities = [
            Entity(id=f"people/{name}", body=name, vector=[1.0, 0.0, 0.0])
            for name in ("alice", "bob", "carol")
        ]

        assert await store.upsert_entities(entities) == 3
        assert client.upsert.call_count == 2
        first_batch = client.upsert.call_args_list[0].kwargs["points"]
        assert first_batch[0].payload == {"entity_id": "people/alice"}
        assert first_batch[0].id == point_id("people/alice")

    @pytest.mark.asyncio
    async def test_upsert_rejects_wrong_dimension(self, store, client):
        with pytest.raises(DimensionMismatch):
            await store.upsert_entities([Entity(id="x", body="x", vector=[1.0])])
        client.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_count_missing_collection(self, store, client):
        client.collection_exists.return_value = False
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_drop_collection(self, store, client):
        assert await store.drop_collection() is True
        client.delete_collection.assert_called_once_with(collection_name="people")

    @pytest.mark.asyncio
    async def test_close(self, store, client):
        await store.close()
        client.close.assert_called_once()
        with pytest.raises(RuntimeError, match="Not connected"):
            store.client
