"""
Lexical Storage
===============

BM25 full-text index with an English analyzer.
"""

from hybridkg.storage.lexical.analyzer import EnglishAnalyzer, stem
from hybridkg.storage.lexical.bm25 import BM25Index

__all__ = [
    "EnglishAnalyzer",
    "BM25Index",
    "stem",
]
