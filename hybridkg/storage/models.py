"""
Storage Models
==============

Dataclasses shared by the lexical, vector and graph backends.

- Entity / RelationshipEdge: bulk-loaded once at ingestion time
- TextSearchRequest / VectorSearchRequest / NeighborRequest: typed backend requests
- RankedHit / GraphNeighbor: per-query, never persisted
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from hybridkg.errors import InvalidQueryError

KIND_SEPARATOR = "/"


def node_kind(node_id: str) -> str:
    """
    Return the namespace prefix of a node id.

    Example:
        >>> node_kind("projects/neural-search")
        'projects'
        >>> node_kind("alice")
        ''
    """
    if KIND_SEPARATOR not in node_id:
        return ""
    return node_id.split(KIND_SEPARATOR, 1)[0]


class Direction(str, Enum):
    """Edge direction relative to the node a neighbour was reached from."""
    OUTGOING = "outgoing"
    INCOMING = "incoming"


@dataclass
class Entity:
    """
    A searchable node (person, article, ...).

    Attributes:
        id: Unique, stable identifier (optionally namespaced, e.g. "people/alice")
        body: Free text used for lexical indexing and embedding
        vector: Dense embedding of ``body`` (exactly D floats once ingested)
        attributes: Display-only scalar fields, never used for scoring
    """
    id: str
    body: str
    vector: Optional[List[float]] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return node_kind(self.id)

    def display_fields(self) -> Dict[str, Any]:
        """Attributes plus body, as shown to the caller."""
        return {**self.attributes, "text": self.body}


@dataclass
class RelationshipEdge:
    """
    Directed, typed edge. ``source -> target`` does not imply the reverse.

    The target may live outside the entity set (e.g. "projects/x").
    """
    source: str
    target: str
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"<RelationshipEdge({self.source} -[{self.type}]-> {self.target})>"


@dataclass
class RankedHit:
    """
    One entry of a single strategy's ranked list.

    Attributes:
        entity_id: Entity identifier
        rank: 1-based position within the strategy's list
        score: Raw backend score (BM25, cosine, -distance); informational only
    """
    entity_id: str
    rank: int
    score: float = 0.0


@dataclass
class EdgeConnection:
    """How a graph neighbour was reached."""
    edge_type: str
    direction: Direction
    from_node: str
    seed: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relationship": self.edge_type,
            "direction": self.direction.value,
            "from": self.from_node,
            "seed": self.seed,
            "attributes": dict(self.attributes),
        }


@dataclass
class GraphNeighbor:
    """
    A node reached by traversal, with every connection found at its minimal depth.
    """
    node_id: str
    depth: int
    connections: List[EdgeConnection] = field(default_factory=list)

    @property
    def primary(self) -> EdgeConnection:
        return self.connections[0]


@dataclass(frozen=True)
class TextSearchRequest:
    """Lexical backend request."""
    query: str
    limit: int

    def __post_init__(self):
        if not self.query or not self.query.strip():
            raise InvalidQueryError("query must be a non-empty string")
        if self.limit < 1:
            raise InvalidQueryError(f"limit must be >= 1, got {self.limit}")


@dataclass(frozen=True)
class VectorSearchRequest:
    """
    Vector backend request.

    Attributes:
        vector: Query embedding (length checked by the backend)
        limit: Max hits
        n_probe: IVF partitions to scan (None = index default). Recall/latency knob.
        exact: Force exhaustive search regardless of index partitioning
    """
    vector: Sequence[float]
    limit: int
    n_probe: Optional[int] = None
    exact: bool = False

    def __post_init__(self):
        if self.limit < 1:
            raise InvalidQueryError(f"limit must be >= 1, got {self.limit}")
        if self.n_probe is not None and self.n_probe < 1:
            raise InvalidQueryError(f"n_probe must be >= 1, got {self.n_probe}")


@dataclass(frozen=True)
class NeighborRequest:
    """Graph backend request: traverse ``depth`` hops from ``seeds`` in both directions."""
    seeds: Sequence[str]
    depth: int = 1

    def __post_init__(self):
        if self.depth < 1:
            raise InvalidQueryError(f"depth must be >= 1, got {self.depth}")
