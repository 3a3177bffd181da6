"""
Gremlin client for PuppyGraph's WebSocket traversal endpoint.

Uses the gremlinpython traversal-source pattern exclusively:

    g = traversal().with_remote(DriverRemoteConnection(url, "g"))

gremlinpython is synchronous from the caller's point of view, so every
call that reaches the server runs in a worker thread via asyncio.to_thread.
Once issued, such a call cannot be cancelled; it runs to completion even
if the awaiting task is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from gremlin_python.driver.driver_remote_connection import DriverRemoteConnection
from gremlin_python.driver.protocol import GremlinServerError
from gremlin_python.process.anonymous_traversal import traversal

from puppygraph_bridge.core.config import GremlinConfig
from puppygraph_bridge.graph.exceptions import NotConnectedError
from puppygraph_bridge.graph.normalizer import normalize
from puppygraph_bridge.graph.traversal_script import validate_script

logger = logging.getLogger(__name__)

GREMLIN_SCHEMA_SOURCE = "Gremlin Database Queries"
GRAPH_TYPE = "PuppyGraph SQL-to-Graph Bridge"


class GremlinClient:
    """Gremlin connection holding one remote traversal source.

    Same ownership rules as Neo4jClient: only this class mutates its
    connection handle, connected flag and last error.
    """

    def __init__(self, config: GremlinConfig) -> None:
        self._config = config
        self._url = config.url
        self._username = config.username
        self._password = config.password
        self._traversal_source = config.traversal_source
        self._connection: DriverRemoteConnection | None = None
        self._g: Any = None
        self._connected = False
        self._connection_error: str | None = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self._url

    @property
    def traversal_source(self) -> str:
        return self._traversal_source

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def connection_error(self) -> str | None:
        return self._connection_error

    async def connect(self) -> bool:
        """Open the remote traversal and probe it with a count query.

        Returns:
            True on success, False otherwise (message kept in connection_error)
        """
        async with self._lock:
            if self._connected:
                return True

            logger.info(
                "Initializing connection to Gremlin endpoint %s (traversal source %s)",
                self._url,
                self._traversal_source,
            )
            if not self._url.startswith(("ws://", "wss://")):
                logger.warning(
                    "Gremlin URL should typically start with ws:// or wss://, got %s",
                    self._url,
                )

            try:
                connection, g, probe = await asyncio.to_thread(self._open_remote)
            except Exception as e:
                self._connection_error = str(e) or type(e).__name__
                logger.error(
                    "Failed to initialize Gremlin connection: %s", self._connection_error
                )
                return False

            self._connection = connection
            self._g = g
            self._connected = True
            self._connection_error = None
            logger.info("Gremlin connection test successful, result: %s", probe)
            return True

    async def execute_query(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[Any]:
        """Execute a traversal script and return normalized results.

        Args:
            query: Script starting with the traversal source, e.g. ``g.V().count()``
            parameters: Values for bare identifiers in the script

        Returns:
            Normalized result items in traversal order

        Raises:
            NotConnectedError: If not connected
            UnsupportedQueryShapeError: If the script is not a step chain on the source
            UnsafeQueryError: If the script contains a denylisted token
            GremlinServerError: If the server rejects the traversal; the
                connection is kept. Any other error from the remote marks
                the client disconnected before it propagates.
        """
        g = self._g
        if not self._connected or g is None:
            raise NotConnectedError("Not connected to Gremlin endpoint")

        parsed = validate_script(query, self._traversal_source)
        bound = parsed.bind(g, parameters or {})
        try:
            results = await asyncio.to_thread(parsed.drain, bound)
        except GremlinServerError:
            raise
        except Exception as e:
            await self._mark_lost(g, e)
            raise

        return [normalize(item) for item in results]

    async def get_schema_data(self) -> dict[str, Any]:
        """Describe the graph via vertex/edge counts and label distributions.

        Raises:
            NotConnectedError: If not connected
        """
        g = self._g
        if not self._connected or g is None:
            raise NotConnectedError("Gremlin client not initialized")

        logger.info("Getting schema data via graph traversal")
        try:
            node_count, edge_count, vertex_labels, edge_labels = await asyncio.to_thread(
                self._schema_probes, g
            )
        except GremlinServerError:
            raise
        except Exception as e:
            await self._mark_lost(g, e)
            raise

        return {
            "summary": "Graph Structure Information",
            "source": GREMLIN_SCHEMA_SOURCE,
            "totalNodes": normalize(node_count),
            "totalRelationships": normalize(edge_count),
            "nodeLabels": [
                {"label": label, "count": int(count)}
                for label, count in (vertex_labels or {}).items()
            ],
            "relationshipTypes": [
                {"type": label, "count": int(count)}
                for label, count in (edge_labels or {}).items()
            ],
            "graphType": GRAPH_TYPE,
        }

    async def close(self) -> None:
        """Close the remote connection; close-time errors are logged, not raised."""
        async with self._lock:
            await self._discard_connection()

    def _open_remote(self) -> tuple[DriverRemoteConnection, Any, Any]:
        connection = DriverRemoteConnection(
            self._url,
            self._traversal_source,
            **self._auth_options(),
        )
        try:
            g = traversal().with_remote(connection)
            probe = g.V().limit(1).count().next()
        except Exception:
            _close_connection(connection)
            raise
        return connection, g, probe

    def _auth_options(self) -> dict[str, str]:
        if self._username and self._password:
            logger.debug("Using username/password authentication for Gremlin")
            return {"username": self._username, "password": self._password}
        logger.info("No Gremlin credentials provided, connecting without authentication")
        return {}

    @staticmethod
    def _schema_probes(g: Any) -> tuple[Any, Any, Any, Any]:
        node_count = g.V().count().next()
        edge_count = g.E().count().next()
        vertex_labels = g.V().label().group_count().next()
        edge_labels = g.E().label().group_count().next()
        return node_count, edge_count, vertex_labels, edge_labels

    async def _mark_lost(self, failed: Any, error: Exception) -> None:
        """Drop the traversal source that raised a transport-level error.

        gremlinpython reports a dropped WebSocket as a plain RuntimeError
        (and an unreachable host as OSError or aiohttp.ClientError); only
        GremlinServerError means the server answered.
        """
        message = str(error) or type(error).__name__
        async with self._lock:
            # A concurrent request may already have reconnected
            if self._g is not failed:
                return
            logger.warning("Lost connection to Gremlin endpoint: %s", message)
            await self._discard_connection()
            self._connection_error = message

    async def _discard_connection(self) -> None:
        connection, self._connection = self._connection, None
        self._g = None
        self._connected = False
        if connection is not None:
            await asyncio.to_thread(_close_connection, connection)


def _close_connection(connection: DriverRemoteConnection) -> None:
    try:
        connection.close()
        logger.info("Gremlin connection closed")
    except Exception:
        logger.exception("Error closing Gremlin connection")
