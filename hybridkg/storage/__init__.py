"""
Storage Layer
=============

Backends behind the engine's typed contracts.

Components:
- lexical/: BM25 inverted index with an English analyzer
- vectors/: embedding providers, numpy exact/IVF index, Qdrant store
- graph/: in-memory relationship graph, FalkorDB graph + full-text store

    Contract          In-memory            External
    --------          ---------            --------
    lexical           BM25Index            FalkorDBGraphStore (full-text index)
    vector            VectorIndex          QdrantVectorStore
    graph             RelationshipGraph    FalkorDBGraphStore
    catalog           InMemoryCatalog      FalkorDBGraphStore
"""

from hybridkg.storage.base import EntityCatalog, GraphBackend, LexicalBackend, VectorBackend
from hybridkg.storage.models import (
    Direction,
    EdgeConnection,
    Entity,
    GraphNeighbor,
    NeighborRequest,
    RankedHit,
    RelationshipEdge,
    TextSearchRequest,
    VectorSearchRequest,
    node_kind,
)

__all__ = [
    # Contracts
    "LexicalBackend",
    "VectorBackend",
    "GraphBackend",
    "EntityCatalog",
    # Models
    "Direction",
    "EdgeConnection",
    "Entity",
    "GraphNeighbor",
    "NeighborRequest",
    "RankedHit",
    "RelationshipEdge",
    "TextSearchRequest",
    "VectorSearchRequest",
    "node_kind",
]
