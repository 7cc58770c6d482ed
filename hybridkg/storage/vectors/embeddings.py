"""
Embedding Providers
===================

Maps text to a fixed-length dense vector.

The engine treats the provider as a black box: ``embed(text) -> List[float]``.
Any failure to produce a vector (server unreachable, model not pulled, bad
response) surfaces as ``EmbeddingUnavailable``; a vector of the wrong length
is a ``DimensionMismatch``. There is no fallback to lexical-only search.

OllamaEmbedder talks to a local Ollama server:

    POST {host}/api/embeddings  {"model": ..., "prompt": ...}  ->  {"embedding": [...]}

Default model is ``nomic-embed-text`` (768 dimensions).
"""

import asyncio
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog

from hybridkg.errors import DimensionMismatch, EmbeddingUnavailable

log = structlog.get_logger()

DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "nomic-embed-text"
DEFAULT_DIMENSION = 768


class EmbeddingProvider(ABC):
    """Text -> vector of ``dimension`` floats."""

    dimension: int

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed one text. Raises EmbeddingUnavailable / DimensionMismatch."""

    async def embed_batch(self, texts: Sequence[str], concurrency: int = 4) -> List[List[float]]:
        """
        Embed many texts, at most ``concurrency`` requests in flight.

        Output order matches input order. The first failure propagates.
        """
        if not texts:
            return []

        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def bounded(text: str) -> List[float]:
            async with semaphore:
                return await self.embed(text)

        return list(await asyncio.gather(*(bounded(t) for t in texts)))

    async def close(self) -> None:
        """Release resources (HTTP sessions, ...)."""

    def _check_dimension(self, vector: Sequence[float]) -> List[float]:
        if len(vector) != self.dimension:
            raise DimensionMismatch(
                expected=self.dimension,
                actual=len(vector),
                context="embedding provider output",
            )
        return [float(x) for x in vector]


class OllamaEmbedder(EmbeddingProvider):
    """
    Embedding provider backed by an Ollama server.

    Environment Variables:
        OLLAMA_HOST: server URL (default http://localhost:11434)
        OLLAMA_MODEL: embedding model (default nomic-embed-text)
        EMBEDDING_DIMENSION: expected vector length (default 768)

    Example:
        embedder = OllamaEmbedder()
        vector = await embedder.embed("neural embeddings expert")
        await embedder.close()
    """

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        timeout_seconds: float = 30.0,
    ):
        self.host = (host or os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST)).rstrip("/")
        self.model = model or os.getenv("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL)
        self.dimension = int(dimension or os.getenv("EMBEDDING_DIMENSION", DEFAULT_DIMENSION))
        self.timeout_seconds = timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None

        log.info(f"OllamaEmbedder configured - host={self.host}, model={self.model}, dim={self.dimension}")

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
        return self.session

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    def _pull_hint(self) -> str:
        return f"pull the model first: ollama pull {self.model}"

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._get_session()
        async with session.post(f"{self.host}/api/embeddings", json=payload) as response:
            if response.status >= 400:
                detail = await response.text()
                if "not found" in detail.lower():
                    raise EmbeddingUnavailable(
                        f"model '{self.model}' not found on {self.host} ({self._pull_hint()})"
                    )
                raise EmbeddingUnavailable(
                    f"Ollama returned HTTP {response.status}: {detail[:200]}"
                )
            return await response.json()

    async def embed(self, text: str) -> List[float]:
        try:
            data = await self._post({"model": self.model, "prompt": text})
        except aiohttp.ClientError as e:
            log.error(f"Error getting embedding from Ollama: {e}")
            raise EmbeddingUnavailable(f"Ollama unreachable at {self.host}: {e}", cause=e) from e
        except asyncio.TimeoutError as e:
            log.error(f"Ollama embedding timed out after {self.timeout_seconds}s")
            raise EmbeddingUnavailable(
                f"Ollama at {self.host} did not answer within {self.timeout_seconds}s", cause=e
            ) from e

        vector = data.get("embedding") if isinstance(data, dict) else None
        if not vector:
            raise EmbeddingUnavailable(f"Ollama returned no embedding for model '{self.model}'")

        log.debug(f"Embedded text ({len(text)} chars) -> {len(vector)} dims")
        return self._check_dimension(vector)

    def __repr__(self) -> str:
        return f"OllamaEmbedder(model={self.model}, host={self.host}, dim={self.dimension})"
