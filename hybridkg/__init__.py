"""
hybridkg: Hybrid Search over a Knowledge Graph
==============================================

Multi-signal retrieval combining BM25 lexical search, dense-vector search and
relationship-graph expansion, merged with Reciprocal Rank Fusion.

Quick Start:
    from hybridkg import HybridKnowledgeBase, HybridKGConfig

    kb = HybridKnowledgeBase(HybridKGConfig(backend="memory"))
    await kb.connect()
    await kb.ensure_setup()

    results = await kb.search("help building search with neural embeddings")
    for r in results:
        print(r.entity_id, r.provenance.value, r.score)

Components:
- core: HybridKnowledgeBase, HybridKGConfig
- retrieval: HybridSearchEngine, reciprocal_rank_fusion, SearchLimits
- storage: BM25Index, VectorIndex, RelationshipGraph, FalkorDB, Qdrant, Ollama
- pipeline: IngestionPipeline
"""

__version__ = "0.1.0"

# Core API
from hybridkg.core import HybridKGConfig, HybridKnowledgeBase

# Retrieval
from hybridkg.retrieval import (
    HybridSearchConfig,
    HybridSearchEngine,
    OrderedResult,
    Provenance,
    SearchLimits,
    SearchResponse,
    reciprocal_rank_fusion,
)

# Errors
from hybridkg.errors import (
    BackendUnavailableError,
    DimensionMismatch,
    EmbeddingUnavailable,
    HybridSearchError,
    InvalidQueryError,
)

__all__ = [
    # Core
    "HybridKnowledgeBase",
    "HybridKGConfig",
    # Retrieval
    "HybridSearchEngine",
    "HybridSearchConfig",
    "SearchLimits",
    "SearchResponse",
    "OrderedResult",
    "Provenance",
    "reciprocal_rank_fusion",
    # Errors
    "HybridSearchError",
    "InvalidQueryError",
    "BackendUnavailableError",
    "EmbeddingUnavailable",
    "DimensionMismatch",
]
