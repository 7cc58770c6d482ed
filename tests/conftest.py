"""
hybridkg Test Configuration
===========================

Shared fixtures for all tests.

The small corpus below is built so that, for the query
"neural embeddings expert" (embedded as [1, 0, 0]):

- emma is the only lexical hit ("neural", "embeddings") and the 3rd vector hit
- alice and carol are the 1st and 2nd vector hits, with no query terms
- jack is reachable only through emma -[collaborates_with]-> jack
"""

from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from hybridkg.retrieval.hybrid import HybridSearchEngine
from hybridkg.retrieval.models import HybridSearchConfig
from hybridkg.storage.graph.memory import InMemoryCatalog, RelationshipGraph
from hybridkg.storage.lexical.bm25 import BM25Index
from hybridkg.storage.models import Entity, RelationshipEdge
from hybridkg.storage.vectors.embeddings import EmbeddingProvider
from hybridkg.storage.vectors.index import VectorIndex

QUERY = "neural embeddings expert"
QUERY_VECTOR = [1.0, 0.0, 0.0]


class StaticEmbedder(EmbeddingProvider):
    """Embedding provider returning fixed vectors per text."""

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        dimension: int = 3,
        default: Optional[List[float]] = None,
    ):
        self.vectors = vectors or {}
        self.dimension = dimension
        self.default = default if default is not None else [0.0] * dimension
        self.calls: List[str] = []
        self.closed = False

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return self._check_dimension(self.vectors.get(text, self.default))

    async def close(self) -> None:
        self.closed = True


def make_entities() -> List[Entity]:
    return [
        Entity(
            id="people/emma",
            body="Research scientist working on neural search and embeddings.",
            vector=[0.6, 0.8, 0.0],
            attributes={"name": "Emma Thompson", "expertise_level": "Expert"},
        ),
        Entity(
            id="people/alice",
            body="Machine learning engineer building semantic retrieval systems.",
            vector=[0.95, 0.05, 0.0],
            attributes={"name": "Alice Chen", "expertise_level": "Senior"},
        ),
        Entity(
            id="people/carol",
            body="Data scientist focusing on ranking and information retrieval.",
            vector=[0.9, 0.3, 0.0],
            attributes={"name": "Carol Williams"},
        ),
        Entity(
            id="people/david",
            body="DevOps engineer managing cloud infrastructure.",
            vector=[0.0, 0.0, 1.0],
            attributes={"name": "David Kim"},
        ),
        Entity(
            id="people/jack",
            body="Technical writer creating documentation and tutorials.",
            vector=[0.0, 1.0, 0.0],
            attributes={"name": "Jack Brown"},
        ),
    ]


def make_edges() -> List[RelationshipEdge]:
    return [
        RelationshipEdge("people/emma", "people/jack", "collaborates_with",
                         {"project": "Research documentation"}),
        RelationshipEdge("people/alice", "people/carol", "works_with",
                         {"project": "Hybrid ranking systems"}),
        RelationshipEdge("people/alice", "people/emma", "collaborates_with",
                         {"project": "Neural search research"}),
        RelationshipEdge("people/alice", "projects/vector-search", "works_on",
                         {"role": "ML engineer"}),
    ]


@pytest.fixture
def entities():
    return make_entities()


@pytest.fixture
def edges():
    return make_edges()


@pytest.fixture
def embedder():
    entities = make_entities()
    vectors = {e.body: e.vector for e in entities}
    vectors[QUERY] = QUERY_VECTOR
    return StaticEmbedder(vectors, dimension=3)


@pytest.fixture
def make_embedder():
    """Factory for StaticEmbedder instances."""
    return StaticEmbedder


@pytest.fixture
def stores(entities, edges):
    """In-memory stores loaded with the test corpus."""
    bm25 = BM25Index()
    bm25.add_entities(entities)
    vectors = VectorIndex(dimension=3)
    vectors.add_entities(entities)
    vectors.build()
    graph = RelationshipGraph()
    graph.add_edges(edges)
    catalog = InMemoryCatalog()
    catalog.add_entities(entities)
    return {"lexical": bm25, "vector": vectors, "graph": graph, "catalog": catalog}


@pytest.fixture
def make_engine(embedder, stores):
    """Factory: engine over the test corpus, any backend overridable."""
    def _make(config: Optional[HybridSearchConfig] = None, **overrides):
        backends = dict(stores, embedder=embedder)
        backends.update(overrides)
        return HybridSearchEngine(config=config, **backends)
    return _make


# Mock FalkorDB client for unit tests
@pytest.fixture
def mock_falkordb():
    """Mock FalkorDB client for unit tests."""
    client = MagicMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.query = AsyncMock(return_value=[])
    client.delete_graph = AsyncMock(return_value=True)
    client.config.graph_name = "hybridkg_test"
    return client
