"""
Hybrid Retrieval Models
=======================

Dataclasses for fused results, final ordered results and engine configuration.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml

from hybridkg.errors import InvalidQueryError
from hybridkg.storage.models import EdgeConnection

log = structlog.get_logger()

WEIGHTS_PATH = Path(__file__).parent.parent / "config" / "expansion_weights.yaml"

EXPANSION_SCORING_MODES = ("fixed", "edge_weighted")


class Provenance(str, Enum):
    """Why a result is in the output."""
    DIRECT = "direct"
    EXPANSION = "expansion"


@dataclass
class FusedResult:
    """
    One entity after Reciprocal Rank Fusion.

    Attributes:
        entity_id: Entity identifier
        score: Sum of per-strategy RRF contributions
        ranks: Strategy name -> 1-based rank in that strategy's list
    """
    entity_id: str
    score: float
    ranks: Dict[str, int] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"<FusedResult({self.entity_id}, score={self.score:.5f}, ranks={self.ranks})>"


@dataclass
class OrderedResult:
    """
    Final, provenance-tagged search result.

    Direct hits carry their per-strategy ``ranks``. Expansion hits carry the
    relationship they were reached through (``via_relationship_type``,
    ``via_entity_id``, ``direction``, ``edge_attributes``) plus every
    ``connections`` entry when several edges lead to the same node.
    """
    entity_id: str
    score: float
    provenance: Provenance
    display_fields: Dict[str, Any] = field(default_factory=dict)
    kind: str = ""
    ranks: Dict[str, int] = field(default_factory=dict)
    via_relationship_type: Optional[str] = None
    via_entity_id: Optional[str] = None
    direction: Optional[str] = None
    edge_attributes: Dict[str, Any] = field(default_factory=dict)
    connections: List[EdgeConnection] = field(default_factory=list)

    @property
    def is_direct(self) -> bool:
        return self.provenance == Provenance.DIRECT

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable form."""
        data = {
            "entity_id": self.entity_id,
            "kind": self.kind,
            "score": self.score,
            "provenance": self.provenance.value,
            "display_fields": dict(self.display_fields),
        }
        if self.is_direct:
            data["ranks"] = dict(self.ranks)
        else:
            data.update({
                "via_relationship_type": self.via_relationship_type,
                "via_entity_id": self.via_entity_id,
                "direction": self.direction,
                "edge_attributes": dict(self.edge_attributes),
                "connections": [c.to_dict() for c in self.connections],
            })
        return data

    def __repr__(self) -> str:
        via = f", via={self.via_relationship_type}:{self.via_entity_id}" if not self.is_direct else ""
        return f"<OrderedResult({self.entity_id}, {self.provenance.value}, score={self.score:.5f}{via})>"


@dataclass(frozen=True)
class SearchLimits:
    """
    Per-query limits.

    Attributes:
        lexical_limit: Max hits from the lexical index (L)
        vector_limit: Max hits from the vector index (L)
        fused_limit: Max direct hits kept after fusion (M)
    """
    lexical_limit: int = 3
    vector_limit: int = 3
    fused_limit: int = 3

    def __post_init__(self):
        for name in ("lexical_limit", "vector_limit", "fused_limit"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise InvalidQueryError(f"{name} must be a positive integer, got {value!r}")


@dataclass
class SearchResponse:
    """
    Results plus execution details.

    Attributes:
        query: Query text as received
        results: Direct hits first, then expansion hits
        degraded_stages: Retrieval stages that failed and were skipped
                         (only with allow_degraded=True)
        timings: Stage name -> seconds
    """
    query: str
    results: List[OrderedResult] = field(default_factory=list)
    degraded_stages: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def direct(self) -> List[OrderedResult]:
        return [r for r in self.results if r.provenance == Provenance.DIRECT]

    @property
    def expansion(self) -> List[OrderedResult]:
        return [r for r in self.results if r.provenance == Provenance.EXPANSION]

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_stages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "degraded_stages": list(self.degraded_stages),
            "timings": dict(self.timings),
        }


@dataclass
class HybridSearchConfig:
    """
    Configuration for HybridSearchEngine.

    Attributes:
        rrf_k: RRF damping constant. Default: 60
        strategy_weights: Optional RRF multiplier per strategy ("lexical", "vector")
        enable_graph_expansion: Expand direct hits through the graph. Default: True
        expansion_depth: Traversal depth. Default: 1 (immediate neighbours)
        expansion_score: Score given to every expansion hit. Default: 0.005
        expansion_scoring: "fixed" (baseline) or "edge_weighted", which
                           multiplies expansion_score by the summed
                           relation weights of the connecting edges
        relation_weights: Relation type -> weight for "edge_weighted"
                          (default: loaded from expansion_weights.yaml)
        embed_timeout / lexical_timeout / vector_timeout / graph_timeout /
        catalog_timeout: Per-stage timeouts in seconds (None = no timeout)
        allow_degraded: Tolerate a failed lexical or vector stage and report
                        it in SearchResponse.degraded_stages. Default: False
        vector_n_probe: IVF partitions to probe (None = index default)
        overlap_lexical_with_embedding: Start the lexical query while the
                                        embedding call is in flight
    """
    rrf_k: int = 60
    strategy_weights: Dict[str, float] = field(default_factory=dict)
    enable_graph_expansion: bool = True
    expansion_depth: int = 1
    expansion_score: float = 0.005
    expansion_scoring: str = "fixed"
    relation_weights: Optional[Dict[str, float]] = None
    embed_timeout: Optional[float] = None
    lexical_timeout: Optional[float] = None
    vector_timeout: Optional[float] = None
    graph_timeout: Optional[float] = None
    catalog_timeout: Optional[float] = None
    allow_degraded: bool = False
    vector_n_probe: Optional[int] = None
    overlap_lexical_with_embedding: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if self.rrf_k <= 0:
            raise ValueError(f"rrf_k must be > 0, got {self.rrf_k}")
        if self.expansion_depth < 1:
            raise ValueError(f"expansion_depth must be >= 1, got {self.expansion_depth}")
        if self.expansion_score < 0:
            raise ValueError(f"expansion_score must be >= 0, got {self.expansion_score}")
        if self.expansion_scoring not in EXPANSION_SCORING_MODES:
            raise ValueError(
                f"expansion_scoring must be one of {EXPANSION_SCORING_MODES}, "
                f"got {self.expansion_scoring!r}"
            )
        for name in ("embed_timeout", "lexical_timeout", "vector_timeout",
                     "graph_timeout", "catalog_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")
        if self.vector_n_probe is not None and self.vector_n_probe < 1:
            raise ValueError(f"vector_n_probe must be >= 1, got {self.vector_n_probe}")
        if self.relation_weights is None:
            self.relation_weights = dict(EXPANSION_WEIGHTS)

    def relation_weight(self, edge_type: str) -> float:
        weights = self.relation_weights or {}
        return weights.get(edge_type, weights.get("default", 1.0))


def _load_expansion_weights(path: Path = WEIGHTS_PATH) -> Dict[str, float]:
    """
    Load relation weights for edge-weighted expansion from YAML.

    Falls back to default weights if the file is missing or unreadable.
    """
    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
        weights = config.get("relation_weights") or _get_default_weights()
        return {str(k): float(v) for k, v in weights.items()}
    except FileNotFoundError:
        log.warning(f"Config file not found: {path}, using default weights")
        return _get_default_weights()
    except (yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
        log.error(f"Error loading config: {e}, using default weights")
        return _get_default_weights()


def _get_default_weights() -> Dict[str, float]:
    """Default relation weights (used if the config file cannot be loaded)."""
    return {
        "collaborates_with": 1.0,
        "works_with": 0.9,
        "mentors": 0.8,
        "manages": 0.7,
        "reports_to": 0.7,
        "consults_with": 0.6,
        "advises": 0.6,
        "works_on": 0.5,
        "default": 0.5,
    }


EXPANSION_WEIGHTS = _load_expansion_weights()
