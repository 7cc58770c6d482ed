"""
Vector Storage
==============

Embeddings and nearest-neighbour search.

Components:
- EmbeddingProvider / OllamaEmbedder: text -> dense vector
- VectorIndex: in-memory exact / IVF index (numpy)
- QdrantVectorStore: Qdrant-backed index

Example:
    from hybridkg.storage.vectors import OllamaEmbedder, VectorIndex

    embedder = OllamaEmbedder()
    index = VectorIndex(dimension=embedder.dimension)
"""

from hybridkg.storage.vectors.embeddings import EmbeddingProvider, OllamaEmbedder
from hybridkg.storage.vectors.index import VectorIndex, validate_vector
from hybridkg.storage.vectors.qdrant import QdrantConfig, QdrantVectorStore

__all__ = [
    "EmbeddingProvider",
    "OllamaEmbedder",
    "VectorIndex",
    "validate_vector",
    "QdrantConfig",
    "QdrantVectorStore",
]
