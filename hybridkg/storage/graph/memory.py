"""
In-memory relationship graph and entity catalog.

Adjacency lists keep edges in insertion order so traversal output is
deterministic. Nodes need not be entities: an edge may point at
"projects/neural-search" without that node ever being ingested.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import structlog

from hybridkg.errors import DuplicateEntityError, UnknownRelationshipType
from hybridkg.storage.base import EntityCatalog, GraphBackend
from hybridkg.storage.models import Direction, Entity, RelationshipEdge

log = structlog.get_logger()


class RelationshipGraph(GraphBackend):
    """
    Directed typed-edge graph.

    Args:
        allowed_types: If given, edges with any other type are rejected with
                       UnknownRelationshipType at ingestion time.

    Example:
        >>> graph = RelationshipGraph()
        >>> graph.add_edges([RelationshipEdge("people/alice", "people/emma", "collaborates_with")])
        >>> await graph.neighbors(NeighborRequest(seeds=["people/alice"], depth=1))
    """

    def __init__(self, allowed_types: Optional[Iterable[str]] = None):
        self.allowed_types: Optional[Set[str]] = set(allowed_types) if allowed_types else None
        self._outgoing: Dict[str, List[RelationshipEdge]] = {}
        self._incoming: Dict[str, List[RelationshipEdge]] = {}
        self._edge_count = 0

    def __len__(self) -> int:
        return self._edge_count

    @property
    def nodes(self) -> Set[str]:
        return set(self._outgoing) | set(self._incoming)

    def add_edges(self, edges: Iterable[RelationshipEdge]) -> int:
        added = 0
        for edge in edges:
            self.add_edge(edge)
            added += 1
        log.debug(f"RelationshipGraph: added {added} edges (total={len(self)})")
        return added

    def add_edge(self, edge: RelationshipEdge) -> None:
        if self.allowed_types is not None and edge.type not in self.allowed_types:
            raise UnknownRelationshipType(edge.type)
        self._outgoing.setdefault(edge.source, []).append(edge)
        self._incoming.setdefault(edge.target, []).append(edge)
        self._edge_count += 1

    def clear(self) -> None:
        self._outgoing.clear()
        self._incoming.clear()
        self._edge_count = 0

    async def _adjacent(
        self,
        frontier: Sequence[str]
    ) -> List[Tuple[str, RelationshipEdge, Direction, str]]:
        await asyncio.sleep(0)
        adjacent = []
        for node in frontier:
            for edge in self._outgoing.get(node, ()):
                adjacent.append((node, edge, Direction.OUTGOING, edge.target))
            for edge in self._incoming.get(node, ()):
                adjacent.append((node, edge, Direction.INCOMING, edge.source))
        return adjacent


class InMemoryCatalog(EntityCatalog):
    """Entity lookup by id, insertion-ordered."""

    def __init__(self):
        self._entities: Dict[str, Entity] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._entities

    def add_entities(self, entities: Iterable[Entity]) -> int:
        added = 0
        for entity in entities:
            if entity.id in self._entities:
                raise DuplicateEntityError(entity.id)
            self._entities[entity.id] = entity
            added += 1
        return added

    def clear(self) -> None:
        self._entities.clear()

    def all(self) -> List[Entity]:
        return list(self._entities.values())

    async def get_entities(self, entity_ids: Sequence[str]) -> Dict[str, Entity]:
        return {eid: self._entities[eid] for eid in entity_ids if eid in self._entities}
