"""
HybridKnowledgeBase
===================

Facade that wires embedder, stores, ingestion and the search engine.

Backends:
- memory: BM25Index + VectorIndex (numpy) + RelationshipGraph + InMemoryCatalog.
  Lives for the process; every run starts empty.
- external: FalkorDB (full-text index, graph, entity properties) + Qdrant (vectors).

Both use Ollama for embeddings unless an EmbeddingProvider is injected.

Usage:
    kb = HybridKnowledgeBase(HybridKGConfig(backend="memory"))
    await kb.connect()
    await kb.ensure_setup()          # loads the sample network when empty
    results = await kb.search("help building search with neural embeddings")
    await kb.close()
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import structlog

from hybridkg.data.professional_network import sample_entities, sample_relationships
from hybridkg.errors import BackendUnavailableError, backend_errors
from hybridkg.pipeline.ingestion import IngestionPipeline, IngestionResult
from hybridkg.retrieval.hybrid import HybridSearchEngine
from hybridkg.retrieval.models import (
    HybridSearchConfig,
    OrderedResult,
    SearchLimits,
    SearchResponse,
)
from hybridkg.storage.graph.client import FalkorDBClient
from hybridkg.storage.graph.config import FalkorDBConfig
from hybridkg.storage.graph.memory import InMemoryCatalog, RelationshipGraph
from hybridkg.storage.graph.store import FalkorDBGraphStore
from hybridkg.storage.lexical.bm25 import BM25Index
from hybridkg.storage.models import Entity, RelationshipEdge
from hybridkg.storage.vectors.embeddings import (
    DEFAULT_DIMENSION,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
    EmbeddingProvider,
    OllamaEmbedder,
)
from hybridkg.storage.vectors.index import METRICS, VectorIndex
from hybridkg.storage.vectors.qdrant import QdrantConfig, QdrantVectorStore

log = structlog.get_logger()

BACKENDS = ("memory", "external")


def _get_env_str(key: str, default: str) -> str:
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


@dataclass
class HybridKGConfig:
    """
    Configuration for HybridKnowledgeBase.

    Environment Variables:
        HYBRIDKG_BACKEND: "memory" (default) or "external"
        OLLAMA_HOST / OLLAMA_MODEL: embedding server and model
        EMBEDDING_DIMENSION: vector length D (default 768)
        FALKORDB_* / QDRANT_*: see FalkorDBConfig and QdrantConfig
    """
    backend: str = field(default_factory=lambda: _get_env_str("HYBRIDKG_BACKEND", "memory"))

    # Embeddings
    ollama_host: str = field(default_factory=lambda: _get_env_str("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
    ollama_model: str = field(default_factory=lambda: _get_env_str("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL))
    embedding_dimension: int = field(
        default_factory=lambda: _get_env_int("EMBEDDING_DIMENSION", DEFAULT_DIMENSION)
    )
    embedding_http_timeout: float = 30.0
    embed_concurrency: int = 4

    # In-memory vector index
    vector_metric: str = "cosine"
    ivf_lists: int = 1
    ivf_probe: int = 1

    # Ingestion
    allowed_relationship_types: Optional[List[str]] = None

    # External stores
    falkordb: FalkorDBConfig = field(default_factory=FalkorDBConfig)
    qdrant: QdrantConfig = field(default_factory=QdrantConfig)

    # Search
    search: HybridSearchConfig = field(default_factory=HybridSearchConfig)

    def __post_init__(self):
        """Validate configuration values."""
        self.backend = self.backend.lower()
        if self.backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.embedding_dimension < 1:
            raise ValueError(f"embedding_dimension must be >= 1, got {self.embedding_dimension}")
        if self.vector_metric not in METRICS:
            raise ValueError(f"vector_metric must be one of {METRICS}, got {self.vector_metric!r}")
        if self.ivf_lists < 1 or self.ivf_probe < 1:
            raise ValueError(
                f"ivf_lists and ivf_probe must be >= 1, got {self.ivf_lists}/{self.ivf_probe}"
            )
        if self.embed_concurrency < 1:
            raise ValueError(f"embed_concurrency must be >= 1, got {self.embed_concurrency}")


class HybridKnowledgeBase:
    """
    Single entry point for setup, search and reset.

    Components are created but not connected until connect() is called.
    """

    def __init__(
        self,
        config: Optional[HybridKGConfig] = None,
        embedder: Optional[EmbeddingProvider] = None,
    ):
        self.config = config or HybridKGConfig()
        self._embedder = embedder
        self._owns_embedder = embedder is None

        # memory backend
        self._bm25: Optional[BM25Index] = None
        self._vectors: Optional[VectorIndex] = None
        self._graph: Optional[RelationshipGraph] = None
        self._catalog: Optional[InMemoryCatalog] = None

        # external backend
        self._falkordb: Optional[FalkorDBClient] = None
        self._graph_store: Optional[FalkorDBGraphStore] = None
        self._qdrant: Optional[QdrantVectorStore] = None

        self._engine: Optional[HybridSearchEngine] = None
        self._connected = False

        log.info(f"HybridKnowledgeBase initialized - backend={self.config.backend}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def backend(self) -> str:
        return self.config.backend

    @property
    def engine(self) -> HybridSearchEngine:
        self._require_connected()
        return self._engine

    @property
    def embedder(self) -> Optional[EmbeddingProvider]:
        return self._embedder

    def _require_connected(self) -> None:
        if not self._connected:
            raise RuntimeError("Not connected. Call connect() first.")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the stores (and connect external ones) and build the engine."""
        if self._connected:
            log.warning("Already connected")
            return

        if self._embedder is None:
            self._embedder = OllamaEmbedder(
                host=self.config.ollama_host,
                model=self.config.ollama_model,
                dimension=self.config.embedding_dimension,
                timeout_seconds=self.config.embedding_http_timeout,
            )

        if self.backend == "memory":
            self._create_memory_stores()
        else:
            await self._connect_external_stores()

        self._engine = self._build_engine()
        self._connected = True
        log.info(f"HybridKnowledgeBase connected ({self.backend})")

    def _create_memory_stores(self) -> None:
        self._bm25 = BM25Index()
        self._vectors = VectorIndex(
            dimension=self.config.embedding_dimension,
            metric=self.config.vector_metric,
            n_lists=self.config.ivf_lists,
            n_probe=self.config.ivf_probe,
        )
        self._graph = RelationshipGraph(allowed_types=self.config.allowed_relationship_types)
        self._catalog = InMemoryCatalog()

    async def _connect_external_stores(self) -> None:
        self._falkordb = FalkorDBClient(self.config.falkordb)
        try:
            await self._falkordb.connect()
        except Exception as e:
            raise BackendUnavailableError(
                "graph",
                f"FalkorDB unreachable at {self.config.falkordb.host}:{self.config.falkordb.port}: {e}",
                cause=e,
            ) from e
        self._graph_store = FalkorDBGraphStore(
            self._falkordb,
            allowed_types=self.config.allowed_relationship_types,
        )

        self._qdrant = QdrantVectorStore(
            dimension=self.config.embedding_dimension,
            config=self.config.qdrant,
        )
        with backend_errors("vector", f"Qdrant connect to {self.config.qdrant.host}:{self.config.qdrant.port}"):
            await self._qdrant.connect()

    def _build_engine(self) -> HybridSearchEngine:
        if self.backend == "memory":
            return HybridSearchEngine(
                embedder=self._embedder,
                lexical=self._bm25,
                vector=self._vectors,
                graph=self._graph,
                catalog=self._catalog,
                config=self.config.search,
            )
        return HybridSearchEngine(
            embedder=self._embedder,
            lexical=self._graph_store,
            vector=self._qdrant,
            graph=self._graph_store,
            catalog=self._graph_store,
            config=self.config.search,
        )

    async def close(self) -> None:
        """Close all connections."""
        if self._owns_embedder and self._embedder is not None:
            await self._embedder.close()
        if self._falkordb:
            await self._falkordb.close()
        if self._qdrant:
            await self._qdrant.close()

        self._connected = False
        log.info("HybridKnowledgeBase connections closed")

    # ------------------------------------------------------------------
    # Setup / reset
    # ------------------------------------------------------------------

    async def is_setup(self) -> bool:
        """True when the stores already hold a corpus."""
        self._require_connected()
        if self.backend == "memory":
            return len(self._catalog) > 0
        with backend_errors("catalog", "inspect external stores"):
            return await self._graph_store.count_entities() > 0 and await self._qdrant.count() > 0

    async def setup(
        self,
        entities: Optional[Iterable[Entity]] = None,
        edges: Optional[Iterable[RelationshipEdge]] = None,
    ) -> IngestionResult:
        """
        (Re)build the stores from a corpus. Existing data is replaced.

        Args:
            entities: Entities to load (default: the sample professional network)
            edges: Relationship edges (default: the sample network's edges)

        The corpus is validated and embedded before anything is cleared, so a
        defective corpus leaves the current stores intact.
        """
        self._require_connected()
        if entities is None:
            entities = sample_entities()
        if edges is None:
            edges = sample_relationships()

        pipeline = IngestionPipeline(
            self._embedder,
            allowed_types=self.config.allowed_relationship_types,
            embed_concurrency=self.config.embed_concurrency,
        )
        entities, edges, embedded = await pipeline.prepare(entities, edges)

        await self._clear()
        if self.backend == "memory":
            result = await pipeline.ingest_memory(
                entities, edges, self._bm25, self._vectors, self._graph, self._catalog
            )
        else:
            result = await pipeline.ingest_external(
                entities, edges, self._graph_store, self._qdrant
            )
        result.embeddings_created = embedded
        return result

    async def ensure_setup(self) -> Optional[IngestionResult]:
        """Load the sample corpus when the stores are empty. Returns None if already set up."""
        if await self.is_setup():
            return None
        log.info("Knowledge base not found. Setting up first...")
        return await self.setup()

    async def reset(self) -> bool:
        """
        Drop every store.

        Returns:
            False when there was nothing to drop (already clean)
        """
        self._require_connected()
        dropped = await self._clear()
        if dropped:
            log.info(f"Knowledge base reset ({self.backend})")
        else:
            log.info("Knowledge base does not exist (already clean)")
        return dropped

    async def _clear(self) -> bool:
        if self.backend == "memory":
            had_data = len(self._catalog) > 0 or len(self._graph) > 0
            self._bm25.clear()
            self._vectors.clear()
            self._graph.clear()
            self._catalog.clear()
            return had_data

        with backend_errors("graph", "drop FalkorDB graph"):
            graph_dropped = await self._graph_store.drop()
        with backend_errors("vector", "drop Qdrant collection"):
            collection_dropped = await self._qdrant.drop_collection()
        return graph_dropped or collection_dropped

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        limits: Optional[SearchLimits] = None
    ) -> List[OrderedResult]:
        """Hybrid search; see HybridSearchEngine.search()."""
        return await self.engine.search(query, limits)

    async def search_detailed(
        self,
        query: str,
        limits: Optional[SearchLimits] = None
    ) -> SearchResponse:
        return await self.engine.search_detailed(query, limits)
