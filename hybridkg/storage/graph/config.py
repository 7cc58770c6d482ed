"""
FalkorDB Configuration
======================

Connection settings for the FalkorDB graph/full-text store.

Usage:
    from hybridkg.storage.graph import FalkorDBConfig

    # Defaults (env vars or built-in values)
    config = FalkorDBConfig()

    # Explicit override
    config = FalkorDBConfig(host="localhost", port=6380, graph_name="hybridkg_prod")

Environment Variables:
    FALKORDB_HOST: server host (default: localhost)
    FALKORDB_PORT: server port (default: 6379)
    FALKORDB_GRAPH_NAME: graph name (default: from HYBRIDKG_ENV, hybridkg_test)
    FALKORDB_PASSWORD: password (default: empty)
    FALKORDB_TIMEOUT_MS: per-query timeout in ms (default: 5000)
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from hybridkg.config import store_names


def _get_env_str(key: str, default: str) -> str:
    """Read an environment variable as a string."""
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Read an environment variable as an int."""
    return int(os.environ.get(key, default))


@dataclass
class FalkorDBConfig:
    """
    FalkorDB connection settings.

    Attributes:
        host: FalkorDB host
        port: FalkorDB port (Redis protocol)
        graph_name: Graph key, one per environment
        timeout_ms: Per-query timeout in milliseconds
        password: Optional password
    """
    host: str = field(default_factory=lambda: _get_env_str("FALKORDB_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("FALKORDB_PORT", 6379))
    graph_name: str = field(
        default_factory=lambda: _get_env_str(
            "FALKORDB_GRAPH_NAME", store_names().graph_name
        )
    )
    timeout_ms: int = field(default_factory=lambda: _get_env_int("FALKORDB_TIMEOUT_MS", 5000))
    password: Optional[str] = field(default_factory=lambda: _get_env_str("FALKORDB_PASSWORD", "") or None)

    def __post_init__(self):
        if self.timeout_ms < 0:
            raise ValueError(f"timeout_ms must be >= 0, got {self.timeout_ms}")
