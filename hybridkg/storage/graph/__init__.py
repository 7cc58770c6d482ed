"""
Graph Storage
=============

Relationship graph backends.

Components:
- RelationshipGraph / InMemoryCatalog: in-memory graph and entity lookup
- FalkorDBClient / FalkorDBConfig: async FalkorDB connection
- FalkorDBGraphStore: FalkorDB-backed graph + full-text + catalog

Example:
    from hybridkg.storage.graph import FalkorDBClient, FalkorDBConfig, FalkorDBGraphStore

    client = FalkorDBClient(FalkorDBConfig(graph_name="hybridkg_test"))
    await client.connect()
    store = FalkorDBGraphStore(client)
"""

from hybridkg.storage.graph.config import FalkorDBConfig
from hybridkg.storage.graph.client import FalkorDBClient
from hybridkg.storage.graph.memory import InMemoryCatalog, RelationshipGraph
from hybridkg.storage.graph.store import FalkorDBGraphStore, fulltext_query

__all__ = [
    "FalkorDBClient",
    "FalkorDBConfig",
    "FalkorDBGraphStore",
    "InMemoryCatalog",
    "RelationshipGraph",
    "fulltext_query",
]
