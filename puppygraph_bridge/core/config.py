"""
Configuration module for puppygraph-bridge.

Uses pydantic-settings for environment-based configuration. Settings is
the only place that reads the environment; the service itself receives
the plain BridgeConfig produced by Settings.to_bridge_config().
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class Neo4jConfig:
    """Connection settings for the Bolt (Cypher) endpoint."""

    url: str
    username: str
    password: str
    database: str = ""


@dataclass(frozen=True)
class GremlinConfig:
    """Connection settings for the Gremlin WebSocket endpoint."""

    url: str
    username: str = ""
    password: str = ""
    traversal_source: str = "g"


@dataclass(frozen=True)
class SchemaConfig:
    """Location and basic-auth credentials of the schema JSON endpoint."""

    url: str
    username: str
    password: str


@dataclass(frozen=True)
class BridgeConfig:
    neo4j: Neo4jConfig
    gremlin: GremlinConfig
    schema: SchemaConfig


class Settings(BaseSettings):
    """
    Application settings loaded from PUPPYGRAPH_* environment variables.

    The unprefixed url/username/password/database fields describe the Bolt
    endpoint, matching the variable names PuppyGraph deployments already use.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUPPYGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # BOLT (CYPHER) CONFIGURATION
    # ===========================================
    url: str = Field(
        default="bolt://localhost:7687",
        description="PuppyGraph Bolt protocol URL",
    )
    username: str = Field(default="neo4j", description="Bolt username")
    password: str = Field(default="password", description="Bolt password")
    database: str = Field(
        default="",
        description="Database name; empty uses the server default",
    )

    # ===========================================
    # GREMLIN CONFIGURATION
    # ===========================================
    gremlin_url: str = Field(
        default="ws://localhost:8182/gremlin",
        description="Gremlin WebSocket URL",
    )
    gremlin_username: str = Field(default="puppygraph", description="Gremlin username")
    gremlin_password: str = Field(
        default="puppygraph123",
        description="Gremlin password",
    )
    gremlin_traversal_source: str = Field(
        default="g",
        description="Name of the remote traversal source",
    )

    # ===========================================
    # SCHEMA API CONFIGURATION
    # ===========================================
    schema_url: str = Field(
        default="http://localhost:8081/schemajson",
        description="PuppyGraph schema JSON endpoint",
    )
    schema_username: str = Field(default="puppygraph", description="Schema API username")
    schema_password: str = Field(
        default="puppygraph123",
        description="Schema API password",
    )

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: str | None = Field(
        default=None,
        description="Optional path for rotating JSON log file",
    )

    def to_bridge_config(self) -> BridgeConfig:
        """Build the plain configuration consumed by PuppyGraphService."""
        return BridgeConfig(
            neo4j=Neo4jConfig(
                url=self.url,
                username=self.username,
                password=self.password,
                database=self.database,
            ),
            gremlin=GremlinConfig(
                url=self.gremlin_url,
                username=self.gremlin_username,
                password=self.gremlin_password,
                traversal_source=self.gremlin_traversal_source,
            ),
            schema=SchemaConfig(
                url=self.schema_url,
                username=self.schema_username,
                password=self.schema_password,
            ),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
