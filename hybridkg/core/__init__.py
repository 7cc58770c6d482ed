"""
hybridkg Core
=============

High-level API: set up a corpus, search it, reset it.

    from hybridkg import HybridKnowledgeBase

    kb = HybridKnowledgeBase()
    await kb.connect()
    await kb.ensure_setup()
    results = await kb.search("help building search with neural embeddings")
"""

from .knowledge_base import BACKENDS, HybridKGConfig, HybridKnowledgeBase

__all__ = [
    "BACKENDS",
    "HybridKGConfig",
    "HybridKnowledgeBase",
]
