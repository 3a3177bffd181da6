"""
PuppyGraph query service.

Owns one Neo4j (Cypher) connection, one Gremlin connection and the schema
endpoint settings, and exposes the four operations a presentation layer
needs: run_cypher, run_gremlin, fetch_schema and get_status.

Connection handling:
- Each request reconnects at most once, lazily, when its backend is down
- A Neo4j outage never blocks Gremlin queries and vice versa
- Failures raise descriptive errors; results are never synthesized

Schema tiers are tried in a fixed order: the schema API (authoritative
mapping), then a Neo4j node count (one round trip), then the Gremlin
structure probe (four round trips).
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any

from puppygraph_bridge.core.config import BridgeConfig
from puppygraph_bridge.graph.exceptions import (
    BackendUnavailableError,
    NotConnectedError,
    QueryExecutionError,
    QueryRejectedError,
    SchemaUnavailableError,
)
from puppygraph_bridge.graph.gremlin_client import GremlinClient
from puppygraph_bridge.graph.neo4j_client import Neo4jClient
from puppygraph_bridge.graph.protocols import (
    GraphConnectionProtocol,
    TraversalConnectionProtocol,
)
from puppygraph_bridge.graph.schema import SCHEMA_API_SOURCE, fetch_schema_from_endpoint
from puppygraph_bridge.graph.traversal_script import validate_script
from puppygraph_bridge.models import ConnectionStatus, QueryResult

logger = logging.getLogger(__name__)

NODE_COUNT_QUERY = "MATCH (n) RETURN count(n) AS count"
NEO4J_SCHEMA_SUMMARY = "Graph Structure Information via Neo4j"


def format_connection_error(
    neo4j_error: str | None,
    gremlin_error: str | None,
) -> str | None:
    """Combine the two per-backend errors into one human-readable string."""
    if neo4j_error and gremlin_error:
        return f"Neo4j: {neo4j_error} | Gremlin: {gremlin_error}"
    if neo4j_error:
        return f"Neo4j: {neo4j_error}"
    if gremlin_error:
        return f"Gremlin: {gremlin_error}"
    return None


class PuppyGraphService:
    """Dual-backend query orchestrator.

    Usage:
        async with PuppyGraphService(settings.to_bridge_config()) as service:
            result = await service.run_cypher("MATCH (n) RETURN n LIMIT 5")
            schema = await service.fetch_schema()

    The service never touches a connection's state directly; it only
    calls connect()/execute_query()/close() on it.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        neo4j_client: GraphConnectionProtocol | None = None,
        gremlin_client: TraversalConnectionProtocol | None = None,
        schema_transport: Any = None,
    ) -> None:
        """Initialize the service and its (not yet connected) clients.

        Args:
            config: Plain connection settings for all three endpoints
            neo4j_client: Optional replacement for the Neo4jClient
            gremlin_client: Optional replacement for the GremlinClient
            schema_transport: Optional httpx transport for the schema API
        """
        self._config = config
        self._neo4j = neo4j_client or Neo4jClient(config.neo4j)
        self._gremlin = gremlin_client or GremlinClient(config.gremlin)
        self._schema_transport = schema_transport

        logger.info("PuppyGraph Neo4j service initialized with URL: %s", config.neo4j.url)
        logger.info(
            "PuppyGraph Gremlin service initialized with URL: %s", config.gremlin.url
        )
        logger.info("Using database: %s", config.neo4j.database or "default")

    @property
    def connection_error(self) -> str | None:
        return format_connection_error(
            self._neo4j.connection_error,
            self._gremlin.connection_error,
        )

    async def start(self) -> ConnectionStatus:
        """Connect both backends concurrently; failures are only recorded."""
        await asyncio.gather(self._neo4j.connect(), self._gremlin.connect())
        status = self.get_status()
        if not status.connected:
            logger.error("All connection attempts failed: %s", status.connection_error)
        return status

    async def run_cypher(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> QueryResult:
        """Execute a Cypher query against the Bolt endpoint.

        Raises:
            BackendUnavailableError: If Neo4j is down and one reconnect failed
            QueryExecutionError: If the query fails on the server
        """
        logger.info("Executing Cypher query: %s", query)
        logger.debug("Parameters: %s", parameters or {})

        if not await self._ensure_connected(self._neo4j, "Neo4j"):
            raise BackendUnavailableError(self._unavailable_message("Cypher", "Neo4j"))
        return await self._execute(self._neo4j, "Cypher", query, parameters)

    async def run_gremlin(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> QueryResult:
        """Execute a Gremlin traversal script.

        The script is validated before any backend is contacted, so shape
        and safety violations never trigger a reconnect.

        Raises:
            UnsupportedQueryShapeError: Script is not a traversal on the source
            UnsafeQueryError: Script contains a denylisted token
            BackendUnavailableError: If Gremlin is down and one reconnect failed
            QueryExecutionError: If the traversal fails on the server
        """
        logger.info("Executing Gremlin query: %s", query)
        logger.debug("Parameters: %s", parameters or {})

        validate_script(query, self._config.gremlin.traversal_source)

        if not await self._ensure_connected(self._gremlin, "Gremlin"):
            raise BackendUnavailableError(self._unavailable_message("Gremlin", "Gremlin"))
        return await self._execute(self._gremlin, "Gremlin", query, parameters)

    async def fetch_schema(self) -> dict[str, Any]:
        """Return schema information from the first tier that answers.

        Raises:
            SchemaUnavailableError: If the schema API, Neo4j and Gremlin all fail
        """
        logger.info("Fetching data sources information")
        tier_errors: dict[str, str] = {}

        try:
            return await fetch_schema_from_endpoint(
                self._config.schema,
                transport=self._schema_transport,
            )
        except Exception as e:
            tier_errors[SCHEMA_API_SOURCE] = _describe(e)
            logger.warning(
                "Schema endpoint failed, falling back to database queries: %s", e
            )

        if await self._ensure_connected(self._neo4j, "Neo4j"):
            try:
                rows = await self._neo4j.execute_query(NODE_COUNT_QUERY)
                return {
                    "summary": NEO4J_SCHEMA_SUMMARY,
                    "nodeCount": rows[0]["count"] if rows else 0,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            except Exception as e:
                tier_errors["Neo4j"] = _describe(e)
                logger.warning("Failed to get data sources via Neo4j: %s", e)
        else:
            tier_errors["Neo4j"] = self._neo4j.connection_error or "not connected"
            logger.warning("Neo4j reconnection failed, trying Gremlin endpoint")

        if await self._ensure_connected(self._gremlin, "Gremlin"):
            try:
                return await self._gremlin.get_schema_data()
            except Exception as e:
                tier_errors["Gremlin"] = _describe(e)
                logger.warning("Gremlin schema query failed: %s", e)
        else:
            tier_errors["Gremlin"] = self._gremlin.connection_error or "not connected"

        detail = self.connection_error or " | ".join(
            f"{tier}: {error}" for tier, error in tier_errors.items()
        )
        logger.error("All schema sources failed: %s", detail)
        raise SchemaUnavailableError(
            f"Cannot fetch schema: no schema source is available. {detail}",
            tier_errors=tier_errors,
        )

    def get_status(self) -> ConnectionStatus:
        """Project both connection states into a status snapshot."""
        neo4j_connected = self._neo4j.is_connected
        gremlin_connected = self._gremlin.is_connected
        return ConnectionStatus(
            connected=neo4j_connected or gremlin_connected,
            neo4j_connected=neo4j_connected,
            gremlin_connected=gremlin_connected,
            connection_error=self.connection_error,
            fallback_mode=False,
        )

    async def shutdown(self) -> None:
        """Close both connections; one failing close does not stop the other."""
        results = await asyncio.gather(
            self._neo4j.close(),
            self._gremlin.close(),
            return_exceptions=True,
        )
        for backend, result in zip(("Neo4j", "Gremlin"), results):
            if isinstance(result, BaseException):
                logger.error("Error closing %s connection: %s", backend, result)
        logger.info("PuppyGraph connections closed")

    async def __aenter__(self) -> PuppyGraphService:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.shutdown()

    async def _ensure_connected(
        self,
        client: GraphConnectionProtocol,
        backend: str,
    ) -> bool:
        if client.is_connected:
            return True
        logger.warning(
            "Not connected to %s endpoint, attempting to reconnect...",
            backend,
            extra={"backend": backend},
        )
        reconnected = await client.connect()
        if not reconnected:
            logger.error("%s reconnection failed", backend)
        return reconnected

    async def _execute(
        self,
        client: GraphConnectionProtocol,
        language: str,
        query: str,
        parameters: dict[str, Any] | None,
    ) -> QueryResult:
        started = time.monotonic()
        try:
            rows = await client.execute_query(query, parameters or {})
        except (QueryRejectedError, NotConnectedError):
            raise
        except Exception as e:
            logger.error(
                "Error executing %s query: %s", language, e, extra={"language": language}
            )
            raise QueryExecutionError(
                f"Error executing {language} query: {_describe(e)}",
                language=language,
                query=query,
                cause=e,
            ) from e

        execution_time_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "%s query executed successfully, returned %d rows",
            language,
            len(rows),
            extra={
                "language": language,
                "row_count": len(rows),
                "execution_time_ms": execution_time_ms,
            },
        )
        return QueryResult.from_rows(rows, execution_time_ms)

    def _unavailable_message(self, language: str, backend: str) -> str:
        message = f"Cannot execute {language} query: Not connected to {backend} endpoint."
        if self.connection_error:
            message = f"{message} {self.connection_error}"
        return message


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__
