"""
hybridkg Pipeline
=================

Offline ingestion of entities and relationship edges.

Example:
    from hybridkg.pipeline import IngestionPipeline

    pipeline = IngestionPipeline(embedder)
    result = await pipeline.ingest_memory(entities, edges, bm25, vectors, graph, catalog)
"""

from hybridkg.pipeline.ingestion import IngestionPipeline, IngestionResult

__all__ = [
    "IngestionPipeline",
    "IngestionResult",
]
