"""
FalkorDB Graph Store
====================

One FalkorDB graph serving three backend contracts:

- LexicalBackend: full-text index on ``Entity.body`` (RediSearch BM25 scoring)
- GraphBackend: typed edges stored as ``(:Node)-[:RELATES {type}]->(:Node)``
- EntityCatalog: entity properties for display

Schema:
    (:Node:Entity {id, body, seq, kind, ...attributes})
    (:Node {id, kind})                       # non-entity nodes, e.g. projects
    (:Node)-[:RELATES {type, seq, ...attributes}]->(:Node)

Relationship types are a property rather than Cypher labels, so every query
is fully parameterised. ``seq`` records insertion order for deterministic
tie-breaks.
"""

import re
from typing import Dict, Iterable, List, Sequence, Set, Tuple, Optional

import structlog

from hybridkg.errors import DuplicateEntityError, UnknownRelationshipType
from hybridkg.storage.base import EntityCatalog, GraphBackend, LexicalBackend
from hybridkg.storage.graph.client import FalkorDBClient
from hybridkg.storage.lexical.analyzer import ENGLISH_STOPWORDS
from hybridkg.storage.models import (
    Direction,
    Entity,
    RankedHit,
    RelationshipEdge,
    TextSearchRequest,
    node_kind,
)

log = structlog.get_logger()

_RESERVED_PROPS = {"id", "body", "seq", "kind"}
_RESERVED_EDGE_PROPS = {"type", "seq"}
_WORD_RE = re.compile(r"[A-Za-z0-9]+")


def fulltext_query(text: str) -> str:
    """
    Turn free text into a RediSearch OR-query of plain terms.

    Example:
        >>> fulltext_query("help with neural embeddings!")
        'help|neural|embeddings'
    """
    terms = []
    for word in _WORD_RE.findall(text.lower()):
        if word not in ENGLISH_STOPWORDS and word not in terms:
            terms.append(word)
    return "|".join(terms)


class FalkorDBGraphStore(LexicalBackend, GraphBackend, EntityCatalog):
    """
    Example:
        store = FalkorDBGraphStore(client)
        await store.ensure_schema()
        await store.load_entities(entities)
        await store.load_edges(edges)
        hits = await store.search_text(TextSearchRequest("neural embeddings", 3))
    """

    def __init__(self, client: FalkorDBClient, allowed_types: Optional[Iterable[str]] = None):
        self.client = client
        self.allowed_types: Optional[Set[str]] = set(allowed_types) if allowed_types else None

    # ------------------------------------------------------------------
    # Schema and ingestion
    # ------------------------------------------------------------------

    async def ensure_schema(self) -> None:
        """Create the id index and the full-text index (idempotent)."""
        statements = [
            "CREATE INDEX FOR (n:Node) ON (n.id)",
            "CALL db.idx.fulltext.createNodeIndex('Entity', 'body')",
        ]
        for cypher in statements:
            try:
                await self.client.query(cypher)
            except Exception as e:
                if "already" not in str(e).lower():
                    raise
                log.debug(f"Index already exists: {cypher}")
        log.info(f"Schema ready on graph '{self.client.config.graph_name}'")

    async def count_entities(self) -> int:
        rows = await self.client.query("MATCH (n:Entity) RETURN count(n) AS count")
        return int(rows[0]["count"]) if rows else 0

    async def load_entities(self, entities: Iterable[Entity]) -> int:
        rows = []
        seen = set()
        for seq, entity in enumerate(entities):
            if entity.id in seen:
                raise DuplicateEntityError(entity.id)
            seen.add(entity.id)
            rows.append({
                "id": entity.id,
                "body": entity.body,
                "seq": seq,
                "kind": entity.kind,
                "attributes": {k: v for k, v in entity.attributes.items() if k not in _RESERVED_PROPS},
            })

        if rows:
            await self.client.query(
                """
                UNWIND $rows AS row
                MERGE (n:Node:Entity {id: row.id})
                SET n.body = row.body, n.seq = row.seq, n.kind = row.kind
                SET n += row.attributes
                """,
                {"rows": rows},
            )
        log.info(f"Loaded {len(rows)} entities into FalkorDB")
        return len(rows)

    async def load_edges(self, edges: Iterable[RelationshipEdge]) -> int:
        rows = []
        for seq, edge in enumerate(edges):
            if self.allowed_types is not None and edge.type not in self.allowed_types:
                raise UnknownRelationshipType(edge.type)
            rows.append({
                "source": edge.source,
                "target": edge.target,
                "source_kind": node_kind(edge.source),
                "target_kind": node_kind(edge.target),
                "type": edge.type,
                "seq": seq,
                "attributes": {k: v for k, v in edge.attributes.items() if k not in _RESERVED_EDGE_PROPS},
            })

        if rows:
            await self.client.query(
                """
                UNWIND $rows AS row
                MERGE (s:Node {id: row.source}) ON CREATE SET s.kind = row.source_kind
                MERGE (t:Node {id: row.target}) ON CREATE SET t.kind = row.target_kind
                CREATE (s)-[r:RELATES {type: row.type, seq: row.seq}]->(t)
                SET r += row.attributes
                """,
                {"rows": rows},
            )
        log.info(f"Loaded {len(rows)} relationships into FalkorDB")
        return len(rows)

    async def drop(self) -> bool:
        return await self.client.delete_graph()

    # ------------------------------------------------------------------
    # LexicalBackend
    # ------------------------------------------------------------------

    async def search_text(self, request: TextSearchRequest) -> List[RankedHit]:
        terms = fulltext_query(request.query)
        if not terms:
            return []

        rows = await self.client.query(
            """
            CALL db.idx.fulltext.queryNodes('Entity', $terms) YIELD node, score
            RETURN node.id AS id, score
            ORDER BY score DESC, node.seq ASC
            LIMIT $limit
            """,
            {"terms": terms, "limit": request.limit},
        )
        return [
            RankedHit(entity_id=row["id"], rank=rank, score=float(row["score"]))
            for rank, row in enumerate(rows, start=1)
        ]

    # ------------------------------------------------------------------
    # GraphBackend
    # ------------------------------------------------------------------

    async def _adjacent(
        self,
        frontier: Sequence[str]
    ) -> List[Tuple[str, RelationshipEdge, Direction, str]]:
        rows = await self.client.query(
            """
            UNWIND range(0, size($frontier) - 1) AS i
            MATCH (s:Node {id: $frontier[i]})-[r:RELATES]-(o:Node)
            RETURN i, s.id AS node, o.id AS other,
                   startNode(r).id AS source, endNode(r).id AS target,
                   properties(r) AS props
            """,
            {"frontier": list(frontier)},
        )

        adjacent = []
        for row in rows:
            props = dict(row.get("props") or {})
            edge = RelationshipEdge(
                source=row["source"],
                target=row["target"],
                type=props.get("type", ""),
                attributes={k: v for k, v in props.items() if k not in _RESERVED_EDGE_PROPS},
            )
            direction = Direction.OUTGOING if row["source"] == row["node"] else Direction.INCOMING
            adjacent.append(((row["i"], direction != Direction.OUTGOING, props.get("seq", 0)),
                             (row["node"], edge, direction, row["other"])))

        # frontier order, outgoing before incoming, then insertion order
        adjacent.sort(key=lambda item: item[0])
        return [entry for _, entry in adjacent]

    # ------------------------------------------------------------------
    # EntityCatalog
    # ------------------------------------------------------------------

    async def get_entities(self, entity_ids: Sequence[str]) -> Dict[str, Entity]:
        if not entity_ids:
            return {}

        rows = await self.client.query(
            "MATCH (n:Entity) WHERE n.id IN $ids RETURN n AS n",
            {"ids": list(entity_ids)},
        )
        entities = {}
        for row in rows:
            props = row["n"]
            entities[props["id"]] = Entity(
                id=props["id"],
                body=props.get("body", ""),
                attributes={k: v for k, v in props.items() if k not in _RESERVED_PROPS},
            )
        return entities
