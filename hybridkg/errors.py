"""
Errors
======

Typed exceptions raised by the hybrid retrieval engine.

Taxonomy:
- InvalidQueryError: malformed input, rejected before any backend call
- BackendUnavailableError: a backend stage (embed, lexical, vector, graph,
  catalog) could not be executed. Fatal for the current query.
- SchemaError: ingestion/consistency defects (dimension mismatch, unknown
  relationship type, duplicate ids). Never retried blindly.

Driver exceptions from external stores are translated at the call site with
``backend_errors(stage)``.

An empty result list is never an error: callers get ``[]`` for "no results"
and an exception for "query could not be executed".
"""

from contextlib import contextmanager
from typing import Iterator, Optional


class HybridSearchError(Exception):
    """Base class for all hybridkg errors."""


class InvalidQueryError(HybridSearchError, ValueError):
    """Query text or limits are malformed."""


class BackendUnavailableError(HybridSearchError):
    """
    A backend stage failed or was unreachable.

    Attributes:
        stage: Pipeline stage that failed (embed, lexical, vector, graph, catalog)
        cause: Underlying exception, if any
    """

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.cause = cause


class EmbeddingUnavailable(BackendUnavailableError):
    """The embedding provider is unreachable or the model is missing."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__("embed", message, cause)


class StageTimeoutError(BackendUnavailableError):
    """A backend call exceeded its per-stage timeout."""

    def __init__(self, stage: str, timeout: Optional[float] = None):
        message = f"timed out after {timeout:.2f}s" if timeout is not None else "timed out"
        super().__init__(stage, message)
        self.timeout = timeout



class SchemaError(HybridSearchError):
    """Ingestion-time or consistency defect in the stored data."""


class DimensionMismatch(SchemaError, ValueError):
    """Vector length differs from the configured dimensionality D."""

    def __init__(self, expected: int, actual: int, context: str = "vector"):
        super().__init__(
            f"{context} has {actual} dimensions, expected {expected}"
        )
        self.expected = expected
        self.actual = actual


class UnknownRelationshipType(SchemaError):
    """Edge references a relationship type outside the allowed set."""

    def __init__(self, edge_type: str):
        super().__init__(f"Unknown relationship type: {edge_type!r}")
        self.edge_type = edge_type


class DuplicateEntityError(SchemaError):
    """Two entities share the same identifier."""

    def __init__(self, entity_id: str):
        super().__init__(f"Duplicate entity id: {entity_id!r}")
        self.entity_id = entity_id


@contextmanager
def backend_errors(stage: str, action: str = "") -> Iterator[None]:
    """
    Translate driver exceptions raised inside the block into BackendUnavailableError.

    Example:
        >>> with backend_errors("graph", "drop graph"):
        ...     await graph_store.drop()
    """
    try:
        yield
    except HybridSearchError:
        raise
    except Exception as e:
        detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
        message = f"{action} failed: {detail}" if action else detail
        raise BackendUnavailableError(stage, message, cause=e) from e
