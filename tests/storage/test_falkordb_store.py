"""
Test FalkorDBGraphStore
=======================

Query construction and row mapping against a mocked FalkorDBClient.
"""

from unittest.mock import AsyncMock

import pytest

from hybridkg.errors import DuplicateEntityError, UnknownRelationshipType
from hybridkg.storage.graph.store import FalkorDBGraphStore, fulltext_query
from hybridkg.storage.models import (
    Direction,
    Entity,
    NeighborRequest,
    RelationshipEdge,
    TextSearchRequest,
)


@pytest.fixture
def store(mock_falkordb):
    return FalkorDBGraphStore(mock_falkordb)


def edge_row(i, node, other, source, target, type_, seq, **attributes):
    return {
        "i": i,
        "node": node,
        "other": other,
        "source": source,
        "target": target,
        "props": {"type": type_, "seq": seq, **attributes},
    }


class TestFulltextQuery:
    """Test free text -> RediSearch query."""

    def test_or_of_terms(self):
        assert fulltext_query("help with neural embeddings!") == "help|neural|embeddings"

    def test_duplicates_and_case(self):
        assert fulltext_query("Neural neural NEURAL") == "neural"

    def test_stopwords_only(self):
        assert fulltext_query("the of and") == ""


class TestLexical:
    """Test search_text."""

    @pytest.mark.asyncio
    async def test_rows_to_ranked_hits(self, store, mock_falkordb):
        mock_falkordb.query.return_value = [
            {"id": "people/emma", "score": 2.5},
            {"id": "people/alice", "score": 1.0},
        ]

        hits = await store.search_text(TextSearchRequest("neural embeddings", limit=3))

        assert [(h.entity_id, h.rank, h.score) for h in hits] == [
            ("people/emma", 1, 2.5),
            ("people/alice", 2, 1.0),
        ]
        _, params = mock_falkordb.query.call_args.args
        assert params == {"terms": "neural|embeddings", "limit": 3}

    @pytest.mark.asyncio
    async def test_stopword_query_skips_backend(self, store, mock_falkordb):
        hits = await store.search_text(TextSearchRequest("the of", limit=3))

        assert hits == []
        mock_falkordb.query.assert_not_awaited()


class TestGraph:
    """Test _adjacent ordering and traversal through the shared BFS."""

    @pytest.mark.asyncio
    async def test_adjacent_ordering(self, store, mock_falkordb):
        mock_falkordb.query.return_value = [
            edge_row(1, "people/bob", "people/henry", "people/henry", "people/bob", "mentors", 4),
            edge_row(0, "people/alice", "people/carol", "people/alice", "people/carol", "works_with", 2),
            edge_row(0, "people/alice", "people/henry", "people/henry", "people/alice", "mentors", 0),
            edge_row(0, "people/alice", "people/emma", "people/alice", "people/emma",
                     "collaborates_with", 1, project="Neural search"),
        ]

        adjacent = await store._adjacent(["people/alice", "people/bob"])

        assert [(node, other, direction) for node, _, direction, other in adjacent] == [
            ("people/alice", "people/emma", Direction.OUTGOING),
            ("people/alice", "people/carol", Direction.OUTGOING),
            ("people/alice", "people/henry", Direction.INCOMING),
            ("people/bob", "people/henry", Direction.INCOMING),
        ]
        edge = adjacent[0][1]
        assert edge.type == "collaborates_with"
        assert edge.attributes == {"project": "Neural search"}

    @pytest.mark.asyncio
    async def test_neighbors(self, store, mock_falkordb):
        mock_falkordb.query.return_value = [
            edge_row(0, "people/emma", "people/jack", "people/emma", "people/jack",
                     "collaborates_with", 3, project="Docs"),
        ]

        result = await store.neighbors(NeighborRequest(seeds=["people/emma"], depth=1))

        assert len(result) == 1
        assert result[0].node_id == "people/jack"
        assert result[0].primary.attributes == {"project": "Docs"}
        assert mock_falkordb.query.await_count == 1


class TestCatalog:
    """Test get_entities."""

    @pytest.mark.asyncio
    async def test_properties_to_entities(self, store, mock_falkordb):
        mock_falkordb.query.return_value = [
            {"n": {"id": "people/alice", "body": "ML engineer", "seq": 0,
                   "kind": "people", "name": "Alice Chen"}},
        ]

        entities = await store.get_entities(["people/alice", "projects/x"])

        alice = entities["people/alice"]
        assert alice.body == "ML engineer"
        assert alice.attributes == {"name": "Alice Chen"}
        assert "projects/x" not in entities

    @pytest.mark.asyncio
    async def test_empty_ids(self, store, mock_falkordb):
        assert await store.get_entities([]) == {}
        mock_falkordb.query.assert_not_awaited()


class TestIngestion:
    """Test schema creation and bulk loading."""

    @pytest.mark.asyncio
    async def test_ensure_schema_tolerates_existing_index(self, store, mock_falkordb):
        mock_falkordb.query.side_effect = [Exception("Attribute 'id' is already indexed"), []]

        await store.ensure_schema()

        assert mock_falkordb.query.await_count == 2

    @pytest.mark.asyncio
    async def test_ensure_schema_propagates_other_errors(self, store, mock_falkordb):
        mock_falkordb.query.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await store.ensure_schema()

    @pytest.mark.asyncio
    async def test_load_entities(self, store, mock_falkordb):
        entities = [
            Entity(id="people/alice", body="ML engineer", attributes={"name": "Alice", "seq": 99}),
            Entity(id="people/bob", body="Backend engineer"),
        ]

        loaded = await store.load_entities(entities)

        assert loaded == 2
        _, params = mock_falkordb.query.call_args.args
        assert [row["seq"] for row in params["rows"]] == [0, 1]
        assert params["rows"][0]["attributes"] == {"name": "Alice"}
        assert params["rows"][0]["kind"] == "people"

    @pytest.mark.asyncio
    async def test_duplicate_entities_rejected_before_write(self, store, mock_falkordb):
        entities = [Entity(id="a", body="x"), Entity(id="a", body="y")]

        with pytest.raises(DuplicateEntityError):
            await store.load_entities(entities)

        mock_falkordb.query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_relationship_type(self, mock_falkordb):
        store = FalkorDBGraphStore(mock_falkordb, allowed_types=["works_with"])

        with pytest.raises(UnknownRelationshipType):
            await store.load_edges([RelationshipEdge("a", "b", "likes")])

        mock_falkordb.query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_and_drop(self, store, mock_falkordb):
        mock_falkordb.query.return_value = [{"count": 10}]

        assert await store.count_entities() == 10
        assert await store.drop() is True
        mock_falkordb.delete_graph.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_count_empty_graph(self, store, mock_falkordb):
        mock_falkordb.query = AsyncMock(return_value=[])
        assert await store.count_entities() == 0
