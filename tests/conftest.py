"""
Pytest configuration and fixtures for puppygraph-bridge tests.
"""

import pytest

from puppygraph_bridge.core.config import (
    BridgeConfig,
    GremlinConfig,
    Neo4jConfig,
    SchemaConfig,
    Settings,
)
from tests.fakes import FakeGraphConnection, FakeTraversalConnection


@pytest.fixture
def neo4j_config() -> Neo4jConfig:
    return Neo4jConfig(
        url="bolt://localhost:7687",
        username="neo4j",
        password="testpassword",
        database="",
    )


@pytest.fixture
def gremlin_config() -> GremlinConfig:
    return GremlinConfig(
        url="ws://localhost:8182/gremlin",
        username="puppygraph",
        password="puppygraph123",
        traversal_source="g",
    )


@pytest.fixture
def schema_config() -> SchemaConfig:
    return SchemaConfig(
        url="http://localhost:8081/schemajson",
        username="puppygraph",
        password="puppygraph123",
    )


@pytest.fixture
def bridge_config(
    neo4j_config: Neo4jConfig,
    gremlin_config: GremlinConfig,
    schema_config: SchemaConfig,
) -> BridgeConfig:
    return BridgeConfig(neo4j=neo4j_config, gremlin=gremlin_config, schema=schema_config)


@pytest.fixture
def settings() -> Settings:
    """Provide test settings independent of the environment."""
    return Settings(
        _env_file=None,
        url="bolt://localhost:7687",
        username="neo4j",
        password="testpassword",
        gremlin_url="ws://localhost:8182/gremlin",
        schema_url="http://localhost:8081/schemajson",
    )


@pytest.fixture
def fake_neo4j() -> FakeGraphConnection:
    """Connected in-memory stand-in for Neo4jClient."""
    return FakeGraphConnection(connected=True)


@pytest.fixture
def fake_gremlin() -> FakeTraversalConnection:
    """Connected in-memory stand-in for GremlinClient."""
    return FakeTraversalConnection(connected=True)
