"""
Reciprocal Rank Fusion
======================

Merges independently ranked lists using rank positions only:

    score(e) = sum over lists L containing e of  w_L / (k + rank_L(e))

BM25 scores and cosine similarities live on incomparable scales; RRF needs
no normalisation between them. Entities found by several strategies collect
several contributions and rise to the top.

Ordering: score descending, then entity id ascending.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from hybridkg.retrieval.models import FusedResult
from hybridkg.storage.models import RankedHit

DEFAULT_RRF_K = 60


def reciprocal_rank_fusion(
    ranked_lists: Mapping[str, Sequence[RankedHit]],
    k: int = DEFAULT_RRF_K,
    limit: Optional[int] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> List[FusedResult]:
    """
    Fuse ranked lists with RRF.

    Args:
        ranked_lists: Strategy name -> hits (1-based ``rank`` on each hit).
                      An empty list contributes nothing.
        k: Damping constant (> 0). 60 is the usual value.
        limit: Keep the top ``limit`` fused results (None = all)
        weights: Optional per-strategy multiplier (default 1.0)

    Returns:
        FusedResult list, best first

    Example:
        >>> fused = reciprocal_rank_fusion({
        ...     "lexical": [RankedHit("A", 1), RankedHit("B", 2)],
        ...     "vector": [RankedHit("B", 1), RankedHit("C", 2)],
        ... })
        >>> [r.entity_id for r in fused]
        ['B', 'A', 'C']
    """
    if k <= 0:
        raise ValueError(f"k must be > 0, got {k}")
    if limit is not None and limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    weights = weights or {}
    scores: Dict[str, float] = {}
    ranks: Dict[str, Dict[str, int]] = {}

    for strategy, hits in ranked_lists.items():
        weight = weights.get(strategy, 1.0)
        for hit in hits:
            if hit.rank < 1:
                raise ValueError(f"{strategy}: rank must be 1-based, got {hit.rank}")
            per_strategy = ranks.setdefault(hit.entity_id, {})
            # first occurrence wins if a backend repeats an id
            if strategy in per_strategy:
                continue
            per_strategy[strategy] = hit.rank
            scores[hit.entity_id] = scores.get(hit.entity_id, 0.0) + weight / (k + hit.rank)

    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ordered = ordered[:limit]

    return [
        FusedResult(entity_id=entity_id, score=score, ranks=dict(ranks[entity_id]))
        for entity_id, score in ordered
    ]
