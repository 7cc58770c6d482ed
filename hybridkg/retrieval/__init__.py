"""
Hybrid Retrieval
================

Rank fusion and the query orchestrator.

Components:
- reciprocal_rank_fusion: merges ranked lists by rank position (RRF, k=60)
- HybridSearchEngine: lexical ‖ embed→vector, fuse, expand, assemble
- SearchLimits / HybridSearchConfig: per-query limits and engine settings
- OrderedResult / SearchResponse: provenance-tagged output

Example:
    from hybridkg.retrieval import HybridSearchEngine, SearchLimits

    engine = HybridSearchEngine(embedder, lexical, vector, graph, catalog)
    results = await engine.search("neural embeddings expert", SearchLimits(fused_limit=5))
"""

from hybridkg.retrieval.fusion import DEFAULT_RRF_K, reciprocal_rank_fusion
from hybridkg.retrieval.hybrid import HybridSearchEngine
from hybridkg.retrieval.models import (
    EXPANSION_WEIGHTS,
    FusedResult,
    HybridSearchConfig,
    OrderedResult,
    Provenance,
    SearchLimits,
    SearchResponse,
)

__all__ = [
    # Fusion
    "DEFAULT_RRF_K",
    "reciprocal_rank_fusion",
    "FusedResult",
    # Engine
    "HybridSearchEngine",
    "HybridSearchConfig",
    "SearchLimits",
    # Output
    "OrderedResult",
    "Provenance",
    "SearchResponse",
    "EXPANSION_WEIGHTS",
]
