# Graph module for PuppyGraph backends
"""
Graph layer for PuppyGraph operations including:
- Neo4jClient: Cypher over the Bolt protocol
- GremlinClient: traversal scripts over WebSocket
- normalize: backend values to plain JSON-safe data
- validate_script / is_unsafe: traversal script checks
- fetch_schema_from_endpoint: schema API client
"""

from puppygraph_bridge.graph.exceptions import (
    BackendUnavailableError,
    GraphBridgeError,
    GraphConnectionError,
    NotConnectedError,
    QueryExecutionError,
    QueryRejectedError,
    SchemaHTTPError,
    SchemaUnavailableError,
    UnsafeQueryError,
    UnsupportedQueryShapeError,
)
from puppygraph_bridge.graph.gremlin_client import GremlinClient
from puppygraph_bridge.graph.neo4j_client import Neo4jClient
from puppygraph_bridge.graph.normalizer import normalize
from puppygraph_bridge.graph.protocols import (
    GraphConnectionProtocol,
    TraversalConnectionProtocol,
)
from puppygraph_bridge.graph.safety import is_unsafe
from puppygraph_bridge.graph.schema import fetch_schema_from_endpoint
from puppygraph_bridge.graph.traversal_script import ParsedTraversal, validate_script

__all__ = [
    # Exceptions
    "GraphBridgeError",
    "GraphConnectionError",
    "NotConnectedError",
    "BackendUnavailableError",
    "QueryRejectedError",
    "UnsupportedQueryShapeError",
    "UnsafeQueryError",
    "QueryExecutionError",
    "SchemaHTTPError",
    "SchemaUnavailableError",
    # Clients
    "Neo4jClient",
    "GremlinClient",
    "GraphConnectionProtocol",
    "TraversalConnectionProtocol",
    # Values and scripts
    "normalize",
    "is_unsafe",
    "validate_script",
    "ParsedTraversal",
    # Schema
    "fetch_schema_from_endpoint",
]
