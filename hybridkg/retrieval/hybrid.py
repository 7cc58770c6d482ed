"""
HybridSearchEngine
==================

Multi-signal retrieval combining BM25, dense vectors and the relationship graph.

Flow:
    query ──┬── lexical.search_text ─────────────┐
            │                                     ├─→ RRF ─→ direct hits (top-M)
            └── embed ─→ vector.search_vector ────┘                │
                                                                   ↓
                                              graph.neighbors(direct hits)
                                                                   ↓
                                 direct hits (fused score) + expansion hits
                                                                   ↓
                                          catalog.get_entities (display)

The lexical query does not depend on the embedding, so it runs while the
embedding call is in flight. Every backend call goes through ``_run_stage``,
which applies the per-stage timeout and tags failures with the stage name.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple

import structlog

from hybridkg.errors import (
    BackendUnavailableError,
    DimensionMismatch,
    EmbeddingUnavailable,
    HybridSearchError,
    InvalidQueryError,
    StageTimeoutError,
)
from hybridkg.retrieval.fusion import reciprocal_rank_fusion
from hybridkg.retrieval.models import (
    FusedResult,
    HybridSearchConfig,
    OrderedResult,
    Provenance,
    SearchLimits,
    SearchResponse,
)
from hybridkg.storage.base import EntityCatalog, GraphBackend, LexicalBackend, VectorBackend
from hybridkg.storage.models import (
    GraphNeighbor,
    NeighborRequest,
    RankedHit,
    TextSearchRequest,
    VectorSearchRequest,
    node_kind,
)
from hybridkg.storage.vectors.embeddings import EmbeddingProvider

log = structlog.get_logger()

LEXICAL = "lexical"
VECTOR = "vector"


class HybridSearchEngine:
    """
    Hybrid search over injected backends.

    All backends are constructed by the caller and passed in; the engine holds
    no global state, so concurrent queries may share one instance.

    Example:
        >>> engine = HybridSearchEngine(
        ...     embedder=OllamaEmbedder(),
        ...     lexical=bm25_index,
        ...     vector=vector_index,
        ...     graph=relationship_graph,
        ...     catalog=catalog,
        ... )
        >>> results = await engine.search("neural embeddings expert")
        >>> for r in results:
        ...     print(r.entity_id, r.provenance.value, f"{r.score:.4f}")
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        lexical: LexicalBackend,
        vector: VectorBackend,
        graph: GraphBackend,
        catalog: EntityCatalog,
        config: Optional[HybridSearchConfig] = None
    ):
        embed_dim = getattr(embedder, "dimension", None)
        index_dim = getattr(vector, "dimension", None)
        if embed_dim is not None and index_dim is not None and embed_dim != index_dim:
            raise DimensionMismatch(
                expected=index_dim,
                actual=embed_dim,
                context="embedding provider",
            )

        self.embedder = embedder
        self.lexical = lexical
        self.vector = vector
        self.graph = graph
        self.catalog = catalog
        self.config = config or HybridSearchConfig()

        log.info(
            f"HybridSearchEngine initialized - "
            f"rrf_k={self.config.rrf_k}, "
            f"expansion={'on' if self.config.enable_graph_expansion else 'off'} "
            f"(depth={self.config.expansion_depth}, scoring={self.config.expansion_scoring}), "
            f"allow_degraded={self.config.allow_degraded}"
        )

    async def search(
        self,
        query: str,
        limits: Optional[SearchLimits] = None
    ) -> List[OrderedResult]:
        """
        Run a hybrid search.

        Args:
            query: Free-text query (must be non-empty)
            limits: Per-strategy and fused limits (default 3/3/3)

        Returns:
            Direct hits (fused score desc) followed by expansion hits.
            An empty list means "no results", never "query failed".

        Raises:
            InvalidQueryError: malformed query or limits, before any backend call
            EmbeddingUnavailable: the embedding provider failed
            BackendUnavailableError: a backend stage failed (``.stage`` names it)
            StageTimeoutError: a backend stage exceeded its timeout
            DimensionMismatch: query vector length differs from the index
        """
        response = await self.search_detailed(query, limits)
        return response.results

    async def search_detailed(
        self,
        query: str,
        limits: Optional[SearchLimits] = None
    ) -> SearchResponse:
        """Same as ``search()`` but also returns per-stage timings and degraded stages."""
        if not isinstance(query, str):
            raise InvalidQueryError(f"query must be a string, got {type(query).__name__}")
        limits = limits or SearchLimits()
        text_request = TextSearchRequest(query=query, limit=limits.lexical_limit)

        response = SearchResponse(query=query)
        started = time.perf_counter()

        log.debug(
            f"search() - query='{query[:80]}', "
            f"limits=({limits.lexical_limit}, {limits.vector_limit}, {limits.fused_limit})"
        )

        # STEP 1-2: embed and fan-out retrieve
        lexical_hits, vector_hits = await self._retrieve(text_request, limits, response)

        # STEP 3: fuse
        fused = reciprocal_rank_fusion(
            {LEXICAL: lexical_hits, VECTOR: vector_hits},
            k=self.config.rrf_k,
            limit=limits.fused_limit,
            weights=self.config.strategy_weights,
        )
        log.debug(
            f"Fused {len(lexical_hits)} lexical + {len(vector_hits)} vector hits "
            f"into {len(fused)} direct hits"
        )

        # STEP 4: expand
        expansion: List[GraphNeighbor] = []
        if fused and self.config.enable_graph_expansion:
            expansion = await self._expand(fused, response)

        # STEP 5: assemble
        response.results = await self._assemble(fused, expansion, response)
        response.timings["total"] = time.perf_counter() - started

        log.info(
            f"search() - {len(fused)} direct + {len(expansion)} expansion results "
            f"in {response.timings['total'] * 1000:.1f}ms"
            + (f" (degraded: {', '.join(response.degraded_stages)})" if response.degraded_stages else "")
        )
        return response

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def _retrieve(
        self,
        text_request: TextSearchRequest,
        limits: SearchLimits,
        response: SearchResponse
    ) -> Tuple[List[RankedHit], List[RankedHit]]:
        """Run lexical and embed→vector concurrently; cancel the sibling on failure."""
        failures: Dict[str, BackendUnavailableError] = {}

        if self.config.overlap_lexical_with_embedding:
            semantic = self._embed_then_search(text_request.query, limits, response, failures)
        else:
            query_vector = await self._embed(text_request.query, response)
            semantic = self._vector_search(query_vector, limits, response, failures)

        lexical = self._tolerant(
            LEXICAL,
            self.lexical.search_text(text_request),
            self.config.lexical_timeout,
            response,
            failures,
        )

        tasks = [asyncio.create_task(lexical), asyncio.create_task(semantic)]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            errors = [
                task.exception() for task in tasks
                if task.done() and not task.cancelled() and task.exception() is not None
            ]
            if errors:
                raise errors[0]
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                log.debug(f"Cancelled {len(pending)} in-flight retrieval task(s)")

        lexical_hits, vector_hits = tasks[0].result(), tasks[1].result()

        if failures:
            response.degraded_stages.extend(
                stage for stage in (LEXICAL, VECTOR) if stage in failures
            )
            if len(failures) == 2:
                # nothing left to fuse: degraded mode needs at least one signal
                raise failures[LEXICAL]

        return lexical_hits, vector_hits

    async def _embed(self, query: str, response: SearchResponse) -> List[float]:
        return await self._run_stage(
            "embed",
            self.embedder.embed(query),
            self.config.embed_timeout,
            response,
        )

    async def _embed_then_search(
        self,
        query: str,
        limits: SearchLimits,
        response: SearchResponse,
        failures: Dict[str, BackendUnavailableError]
    ) -> List[RankedHit]:
        query_vector = await self._embed(query, response)
        return await self._vector_search(query_vector, limits, response, failures)

    async def _vector_search(
        self,
        query_vector: List[float],
        limits: SearchLimits,
        response: SearchResponse,
        failures: Dict[str, BackendUnavailableError]
    ) -> List[RankedHit]:
        request = VectorSearchRequest(
            vector=query_vector,
            limit=limits.vector_limit,
            n_probe=self.config.vector_n_probe,
        )
        return await self._tolerant(
            VECTOR,
            self.vector.search_vector(request),
            self.config.vector_timeout,
            response,
            failures,
        )

    async def _tolerant(
        self,
        stage: str,
        awaitable,
        timeout: Optional[float],
        response: SearchResponse,
        failures: Dict[str, BackendUnavailableError]
    ) -> List[RankedHit]:
        """Run a retrieval stage; in degraded mode, an unavailable backend yields []."""
        try:
            return await self._run_stage(stage, awaitable, timeout, response)
        except BackendUnavailableError as e:
            if not self.config.allow_degraded:
                raise
            failures[stage] = e
            log.warning(f"Stage '{stage}' unavailable, continuing in degraded mode: {e}")
            return []

    async def _run_stage(
        self,
        stage: str,
        awaitable,
        timeout: Optional[float],
        response: SearchResponse
    ) -> Any:
        """
        Await one backend call with its timeout.

        Typed errors pass through unchanged. A TimeoutError under a stage
        timeout becomes StageTimeoutError. Anything else, including a
        backend's own TimeoutError when the stage has no timeout, is wrapped
        in BackendUnavailableError (EmbeddingUnavailable for the embed stage)
        with the original exception chained.
        """
        started = time.perf_counter()
        try:
            if timeout is None:
                return await awaitable
            try:
                return await asyncio.wait_for(awaitable, timeout)
            except asyncio.TimeoutError as e:
                log.error(f"Stage '{stage}' timed out after {timeout}s")
                raise StageTimeoutError(stage, timeout) from e
        except HybridSearchError:
            raise
        except Exception as e:
            log.error(f"Stage '{stage}' failed: {type(e).__name__}: {e}")
            message = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            if stage == "embed":
                raise EmbeddingUnavailable(message, cause=e) from e
            raise BackendUnavailableError(stage, message, cause=e) from e
        finally:
            response.timings[stage] = time.perf_counter() - started

    # ------------------------------------------------------------------
    # Expansion and assembly
    # ------------------------------------------------------------------

    async def _expand(
        self,
        fused: List[FusedResult],
        response: SearchResponse
    ) -> List[GraphNeighbor]:
        """Neighbours of the direct hits, never including a direct hit."""
        direct_ids = [r.entity_id for r in fused]
        request = NeighborRequest(seeds=direct_ids, depth=self.config.expansion_depth)

        neighbors = await self._run_stage(
            "graph",
            self.graph.neighbors(request),
            self.config.graph_timeout,
            response,
        )

        direct = set(direct_ids)
        expansion = [n for n in neighbors if n.node_id not in direct and n.connections]
        expansion.sort(key=lambda n: (-self._expansion_score(n), -len(n.connections), n.node_id))

        log.debug(f"Graph expansion from {len(direct_ids)} seeds found {len(expansion)} nodes")
        return expansion

    def _expansion_score(self, neighbor: GraphNeighbor) -> float:
        base = self.config.expansion_score
        if self.config.expansion_scoring == "edge_weighted":
            return base * sum(
                self.config.relation_weight(c.edge_type) for c in neighbor.connections
            )
        return base

    async def _assemble(
        self,
        fused: List[FusedResult],
        expansion: List[GraphNeighbor],
        response: SearchResponse
    ) -> List[OrderedResult]:
        ids = [r.entity_id for r in fused] + [n.node_id for n in expansion]
        entities = {}
        if ids:
            entities = await self._run_stage(
                "catalog",
                self.catalog.get_entities(ids),
                self.config.catalog_timeout,
                response,
            )

        results = []
        for hit in fused:
            entity = entities.get(hit.entity_id)
            if entity is None:
                log.warning(f"Direct hit {hit.entity_id} missing from entity catalog")
            results.append(OrderedResult(
                entity_id=hit.entity_id,
                score=hit.score,
                provenance=Provenance.DIRECT,
                display_fields=entity.display_fields() if entity else {},
                kind=node_kind(hit.entity_id),
                ranks=dict(hit.ranks),
            ))

        for neighbor in expansion:
            entity = entities.get(neighbor.node_id)
            primary = neighbor.primary
            results.append(OrderedResult(
                entity_id=neighbor.node_id,
                score=self._expansion_score(neighbor),
                provenance=Provenance.EXPANSION,
                display_fields=entity.display_fields() if entity else {},
                kind=node_kind(neighbor.node_id),
                via_relationship_type=primary.edge_type,
                via_entity_id=primary.from_node,
                direction=primary.direction.value,
                edge_attributes=dict(primary.attributes),
                connections=list(neighbor.connections),
            ))

        return results
