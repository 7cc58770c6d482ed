"""
FalkorDB Client
===============

Async wrapper around the synchronous falkordb-py driver.

FalkorDB speaks the Redis protocol and runs Cypher; each query runs in the
default executor so the event loop stays free for concurrent stages.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog
from falkordb import FalkorDB, Graph

from hybridkg.storage.graph.config import FalkorDBConfig

log = structlog.get_logger()


class FalkorDBClient:
    """
    Async client for a single FalkorDB graph.

    Example:
        client = FalkorDBClient(config)
        await client.connect()

        results = await client.query(
            "MATCH (n:Entity {id: $id}) RETURN n.body AS body",
            {"id": "people/alice"}
        )

        await client.close()
    """

    def __init__(self, config: Optional[FalkorDBConfig] = None):
        self.config = config or FalkorDBConfig()
        self._db: Optional[FalkorDB] = None
        self._graph: Optional[Graph] = None
        self._connected = False

        log.info(
            f"FalkorDBClient initialized - "
            f"host={self.config.host}:{self.config.port}, "
            f"graph={self.config.graph_name}"
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self):
        """Establish connection to FalkorDB."""
        if self._connected:
            log.debug("Already connected to FalkorDB")
            return

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._connect_sync)

        log.info(f"Connected to FalkorDB at {self.config.host}:{self.config.port}")

    def _connect_sync(self):
        """Synchronous connection (called in executor)."""
        self._db = FalkorDB(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
        )
        self._graph = self._db.select_graph(self.config.graph_name)
        self._connected = True

    async def close(self):
        """Close connection."""
        if not self._connected:
            return

        # Connections belong to the redis pool; just drop the handles
        self._connected = False
        self._db = None
        self._graph = None
        log.info("Disconnected from FalkorDB")

    async def query(
        self,
        cypher: str,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a Cypher query.

        Args:
            cypher: Cypher query string
            params: Query parameters

        Returns:
            List of result records as dicts keyed by column alias
        """
        if not self._connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self._query_sync,
            cypher,
            params or {}
        )

    def _query_sync(self, cypher: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Execute query synchronously (called in executor)."""
        try:
            result = self._graph.query(cypher, params, timeout=self.config.timeout_ms or None)
        except Exception as e:
            log.error(f"Query failed: {cypher[:100]}... Error: {e}")
            raise

        records = []
        if result.result_set:
            # header format is [[type, alias], ...]
            headers = [h[1] if len(h) > 1 else f"col_{i}" for i, h in enumerate(result.header)]
            for row in result.result_set:
                record = {}
                for name, value in zip(headers, row):
                    if hasattr(value, "properties"):
                        record[name] = dict(value.properties)
                    else:
                        record[name] = value
                records.append(record)

        log.debug(
            f"Query executed: {cypher[:100]}... "
            f"(params={list(params.keys())}) -> {len(records)} records"
        )
        return records

    async def delete_graph(self) -> bool:
        """Drop the whole graph. Returns False when it did not exist."""
        if not self._connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")

        loop = asyncio.get_running_loop()

        def _delete() -> bool:
            if self.config.graph_name not in self._db.list_graphs():
                return False
            self._graph.delete()
            return True

        deleted = await loop.run_in_executor(None, _delete)
        if deleted:
            log.info(f"Graph '{self.config.graph_name}' dropped")
        return deleted

    async def health_check(self) -> bool:
        """True when FalkorDB answers a trivial query."""
        try:
            if not self._connected:
                await self.connect()
            await self.query("RETURN 1")
            return True
        except Exception as e:
            log.error(f"Health check failed: {e}")
            return False
