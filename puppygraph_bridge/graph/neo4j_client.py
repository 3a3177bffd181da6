"""
Neo4j (Bolt) client for PuppyGraph's Cypher endpoint.

Design:
- One driver instance per client, reused across queries
- One session per query, released on every exit path (async with)
- connect() never raises: failures are recorded as connection_error
- Every returned value goes through the value normalizer

Usage:
    client = Neo4jClient(Neo4jConfig(url=..., username=..., password=...))
    if await client.connect():
        rows = await client.execute_query("MATCH (n) RETURN n LIMIT 10")
    await client.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import ServiceUnavailable, SessionExpired

from puppygraph_bridge.core.config import Neo4jConfig
from puppygraph_bridge.graph.exceptions import GraphConnectionError, NotConnectedError
from puppygraph_bridge.graph.normalizer import normalize

if TYPE_CHECKING:
    from neo4j import AsyncDriver

logger = logging.getLogger(__name__)

VERIFY_QUERY = "RETURN 1 AS result"


class Neo4jClient:
    """Cypher connection over the Bolt protocol.

    State (driver handle, connected flag, last error) is only ever changed
    by this class's own connect()/close() and lost-connection handling.
    An asyncio.Lock serializes connect() and close() so concurrent
    reconnect attempts do not race each other.
    """

    def __init__(self, config: Neo4jConfig) -> None:
        """Initialize client with connection settings.

        Note:
            Driver is NOT created here - call connect() or use as
            async context manager.
        """
        self._config = config
        self._uri = config.url
        self._user = config.username
        self._password = config.password
        self._database = config.database
        self._driver: AsyncDriver | None = None
        self._connected = False
        self._connection_error: str | None = None
        self._lock = asyncio.Lock()

    @property
    def uri(self) -> str:
        """Get the connection URI."""
        return self._uri

    @property
    def database(self) -> str:
        """Get the database name ("" means server default)."""
        return self._database

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def connection_error(self) -> str | None:
        return self._connection_error

    async def connect(self) -> bool:
        """Create the driver and verify it with a round-trip query.

        Returns:
            True on success; False if the endpoint is unreachable or
            rejects the credentials (the message is kept in connection_error)
        """
        async with self._lock:
            if self._connected:
                return True

            logger.info("Initializing connection to Neo4j endpoint %s", self._uri)
            try:
                self._driver = AsyncGraphDatabase.driver(
                    self._uri,
                    auth=(self._user, self._password),
                )
                await self.verify()
            except Exception as e:
                self._connection_error = str(e) or type(e).__name__
                logger.error(
                    "Failed to initialize Neo4j connection: %s", self._connection_error
                )
                await self._discard_driver()
                return False

            self._connected = True
            self._connection_error = None
            logger.info("Successfully connected to Neo4j endpoint")
            return True

    async def verify(self) -> None:
        """Run a trivial query in a transient session.

        Raises:
            GraphConnectionError: If the driver has not been created
            neo4j.exceptions.Neo4jError: If the round trip fails
        """
        if self._driver is None:
            raise GraphConnectionError("Neo4j driver not initialized")

        async with self._driver.session(**self._session_kwargs()) as session:
            result = await session.run(VERIFY_QUERY)
            await result.consume()
        logger.debug("Neo4j connection verified")

    async def execute_query(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a Cypher query and return normalized records.

        Args:
            query: Cypher query string
            parameters: Optional query parameters

        Returns:
            One dict per record, keyed by the record's field names

        Raises:
            NotConnectedError: If not connected
            neo4j.exceptions.Neo4jError: If the query fails on the server
        """
        driver = self._driver
        if not self._connected or driver is None:
            raise NotConnectedError("Not connected to Neo4j endpoint")

        try:
            async with driver.session(**self._session_kwargs()) as session:
                result = await session.run(query, parameters or {})
                eager = await result.to_eager_result()
        except (ServiceUnavailable, SessionExpired) as e:
            logger.warning("Lost connection to Neo4j endpoint: %s", e)
            await self._mark_lost(driver, str(e))
            raise

        return [
            {key: normalize(value) for key, value in record.items()}
            for record in eager.records
        ]

    async def close(self) -> None:
        """Close the driver connection.

        Safe to call even if not connected (no-op).
        """
        async with self._lock:
            driver, self._driver = self._driver, None
            self._connected = False
            if driver is not None:
                await driver.close()
                logger.info("Neo4j connection closed")

    async def __aenter__(self) -> Neo4jClient:
        """Async context manager entry - connect to Neo4j."""
        if not await self.connect():
            raise GraphConnectionError(
                f"Failed to connect to Neo4j at {self._uri}: {self._connection_error}"
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit - close connection."""
        await self.close()

    def _session_kwargs(self) -> dict[str, Any]:
        if self._database:
            return {"database": self._database}
        return {}

    async def _mark_lost(self, failed: AsyncDriver, message: str) -> None:
        async with self._lock:
            # A concurrent request may already have replaced the failed driver
            if self._driver is not failed:
                return
            await self._discard_driver()
            self._connection_error = message

    async def _discard_driver(self) -> None:
        driver, self._driver = self._driver, None
        self._connected = False
        if driver is None:
            return
        try:
            await driver.close()
        except Exception:
            logger.debug("Ignoring error while discarding Neo4j driver", exc_info=True)
