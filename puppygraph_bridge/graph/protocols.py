"""
Protocols shared by the two backend connections.

PuppyGraphService depends only on these interfaces, so Neo4jClient,
GremlinClient and the in-memory fakes used in tests are interchangeable.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class GraphConnectionProtocol(Protocol):
    """Connection lifecycle and query execution for one backend."""

    @property
    def is_connected(self) -> bool:
        """Whether the last connect() succeeded and nothing closed it since."""
        ...

    @property
    def connection_error(self) -> str | None:
        """Message of the most recent connect failure or lost connection."""
        ...

    async def connect(self) -> bool:
        """Open the backend handle; never raises."""
        ...

    async def execute_query(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[Any]:
        """Execute a query and return normalized rows."""
        ...

    async def close(self) -> None:
        """Release the backend handle; safe to call repeatedly."""
        ...


@runtime_checkable
class TraversalConnectionProtocol(GraphConnectionProtocol, Protocol):
    """Gremlin connection, which can also describe the graph structure."""

    async def get_schema_data(self) -> dict[str, Any]:
        """Probe vertex/edge counts and label distributions."""
        ...
