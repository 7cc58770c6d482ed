"""
BM25 Lexical Index
==================

In-memory inverted index with Okapi BM25 scoring.

    idf(t)   = ln((N - df + 0.5) / (df + 0.5) + 1)
    score(d) = sum_t idf(t) * tf * (k1 + 1) / (tf + k1 * (1 - b + b * |d| / avgdl))

Query terms are OR-ed: a document matching any term is a candidate.
Ties are broken by insertion order, so results are deterministic for a
fixed index.
"""

import asyncio
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from hybridkg.errors import DuplicateEntityError
from hybridkg.storage.base import LexicalBackend
from hybridkg.storage.lexical.analyzer import EnglishAnalyzer
from hybridkg.storage.models import Entity, RankedHit, TextSearchRequest

log = structlog.get_logger()


@dataclass
class _Posting:
    doc_index: int
    tf: int


class BM25Index(LexicalBackend):
    """
    BM25 index over entity bodies.

    Example:
        >>> index = BM25Index()
        >>> index.add_entities(entities)
        >>> hits = await index.search_text(TextSearchRequest("neural embeddings", limit=3))
    """

    def __init__(
        self,
        k1: float = 1.2,
        b: float = 0.75,
        analyzer: Optional[EnglishAnalyzer] = None,
    ):
        if k1 < 0:
            raise ValueError(f"k1 must be >= 0, got {k1}")
        if not 0 <= b <= 1:
            raise ValueError(f"b must be in [0, 1], got {b}")

        self.k1 = float(k1)
        self.b = float(b)
        self.analyzer = analyzer or EnglishAnalyzer()

        self._ids: List[str] = []
        self._positions: Dict[str, int] = {}
        self._lengths: List[int] = []
        self._postings: Dict[str, List[_Posting]] = {}
        self._total_length = 0

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def avgdl(self) -> float:
        return self._total_length / len(self._ids) if self._ids else 0.0

    def add_entities(self, entities: Iterable[Entity]) -> int:
        """Index entity bodies in iteration order. Returns the number added."""
        added = 0
        for entity in entities:
            self.add(entity.id, entity.body)
            added += 1
        log.debug(f"BM25Index: indexed {added} entities (total={len(self)})")
        return added

    def add(self, entity_id: str, text: str) -> None:
        if entity_id in self._positions:
            raise DuplicateEntityError(entity_id)

        doc_index = len(self._ids)
        tokens = self.analyzer(text)
        self._ids.append(entity_id)
        self._positions[entity_id] = doc_index
        self._lengths.append(len(tokens))
        self._total_length += len(tokens)

        for term, tf in Counter(tokens).items():
            self._postings.setdefault(term, []).append(_Posting(doc_index, tf))

    def clear(self) -> None:
        self._ids.clear()
        self._positions.clear()
        self._lengths.clear()
        self._postings.clear()
        self._total_length = 0

    def idf(self, term: str) -> float:
        df = len(self._postings.get(term, ()))
        n = len(self._ids)
        return math.log((n - df + 0.5) / (df + 0.5) + 1.0)

    def score_all(self, query: str) -> List[Tuple[int, float]]:
        """(doc_index, score) for every document matching at least one term."""
        terms = list(dict.fromkeys(self.analyzer(query)))
        if not terms or not self._ids:
            return []

        avgdl = max(self.avgdl, 1e-9)
        scores: Dict[int, float] = {}
        for term in terms:
            postings = self._postings.get(term)
            if not postings:
                continue
            idf = self.idf(term)
            for posting in postings:
                norm = self.k1 * (1.0 - self.b + self.b * self._lengths[posting.doc_index] / avgdl)
                contribution = idf * posting.tf * (self.k1 + 1.0) / (posting.tf + norm)
                scores[posting.doc_index] = scores.get(posting.doc_index, 0.0) + contribution

        return list(scores.items())

    def search(self, request: TextSearchRequest) -> List[RankedHit]:
        """Synchronous search; see ``search_text``."""
        scored = self.score_all(request.query)
        # score desc, then insertion order
        scored.sort(key=lambda item: (-item[1], item[0]))

        hits = [
            RankedHit(entity_id=self._ids[doc_index], rank=rank, score=score)
            for rank, (doc_index, score) in enumerate(scored[: request.limit], start=1)
        ]
        log.debug(f"BM25 search '{request.query[:50]}' -> {len(hits)} hits")
        return hits

    async def search_text(self, request: TextSearchRequest) -> List[RankedHit]:
        # Yield once so concurrent stages interleave on the event loop
        await asyncio.sleep(0)
        return self.search(request)
