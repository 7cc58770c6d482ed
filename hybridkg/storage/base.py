"""
Backend Interfaces
==================

Contracts consumed by the HybridSearchEngine. Backends are constructed once
and injected into the engine, so tests can swap in fakes.

    LexicalBackend.search_text(TextSearchRequest)   -> List[RankedHit]
    VectorBackend.search_vector(VectorSearchRequest) -> List[RankedHit]
    GraphBackend.neighbors(NeighborRequest)          -> List[GraphNeighbor]
    EntityCatalog.get_entities(ids)                  -> Dict[id, Entity]
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Sequence, Tuple

from hybridkg.storage.models import (
    Direction,
    EdgeConnection,
    Entity,
    GraphNeighbor,
    NeighborRequest,
    RankedHit,
    RelationshipEdge,
    TextSearchRequest,
    VectorSearchRequest,
)


class LexicalBackend(ABC):
    """Term-based relevance search over entity bodies."""

    @abstractmethod
    async def search_text(self, request: TextSearchRequest) -> List[RankedHit]:
        """Return up to ``request.limit`` hits, best first. ``[]`` when nothing matches."""


class VectorBackend(ABC):
    """Nearest-neighbour search over entity embeddings."""

    dimension: int

    @abstractmethod
    async def search_vector(self, request: VectorSearchRequest) -> List[RankedHit]:
        """Return up to ``request.limit`` hits, best first. Raises DimensionMismatch."""


class EntityCatalog(ABC):
    """Lookup of stored entities for display fields."""

    @abstractmethod
    async def get_entities(self, entity_ids: Sequence[str]) -> Dict[str, Entity]:
        """Return the known entities among ``entity_ids``; unknown ids are omitted."""


class GraphBackend(ABC):
    """
    Directed typed-edge graph with breadth-first traversal.

    Subclasses only provide ``_adjacent()``: the edges touching a frontier.
    The traversal itself (visited set, minimal depth, connection bookkeeping)
    lives here so every backend honours the same termination guarantees.
    """

    @abstractmethod
    async def _adjacent(
        self,
        frontier: Sequence[str]
    ) -> List[Tuple[str, RelationshipEdge, Direction, str]]:
        """
        Edges touching the frontier.

        Returns:
            List of (frontier_node, edge, direction, other_node), ordered by
            frontier position then edge insertion order.
        """

    async def neighbors(self, request: NeighborRequest) -> List[GraphNeighbor]:
        """
        Nodes reachable within ``request.depth`` hops in either direction.

        Seeds are never reported as their own neighbours. Each node appears
        once, at its minimal depth, with all connections found at that depth.
        """
        seeds = _unique(request.seeds)
        if not seeds:
            return []

        visited = set(seeds)
        # node -> originating seed
        origin: Dict[str, str] = {seed: seed for seed in seeds}
        ordered: List[GraphNeighbor] = []
        frontier = seeds

        for depth in range(1, request.depth + 1):
            if not frontier:
                break

            layer: Dict[str, GraphNeighbor] = {}
            for from_node, edge, direction, other in await self._adjacent(frontier):
                if other in visited:
                    continue
                neighbor = layer.get(other)
                if neighbor is None:
                    neighbor = GraphNeighbor(node_id=other, depth=depth)
                    layer[other] = neighbor
                    ordered.append(neighbor)
                    origin[other] = origin[from_node]
                neighbor.connections.append(EdgeConnection(
                    edge_type=edge.type,
                    direction=direction,
                    from_node=from_node,
                    seed=origin[from_node],
                    attributes=dict(edge.attributes),
                ))

            visited.update(layer)
            frontier = list(layer)

        return ordered


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
