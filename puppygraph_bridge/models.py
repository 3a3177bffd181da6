"""
Pydantic models for the service's result envelopes.

These models define the contract between PuppyGraphService and whatever
presentation layer exposes it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueryMetadata(BaseModel):
    """Execution metadata attached to every query result."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    execution_time_ms: int = Field(
        default=0,
        ge=0,
        description="Wall-clock time spent in the backend call",
    )
    row_count: int = Field(default=0, ge=0, description="Number of returned rows")
    error: str | None = Field(default=None, description="Error message, if any")
    error_type: str | None = Field(default=None, description="Error class name")


class QueryResult(BaseModel):
    """Uniform result of a Cypher or Gremlin query."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    data: list[Any] = Field(default_factory=list, description="Normalized records")
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)

    @model_validator(mode="after")
    def validate_row_count(self) -> QueryResult:
        """Ensure row_count matches the data for successful results."""
        if self.metadata.error is None and self.metadata.row_count != len(self.data):
            raise ValueError(
                f"row_count {self.metadata.row_count} does not match "
                f"{len(self.data)} returned rows"
            )
        return self

    @classmethod
    def from_rows(cls, rows: list[Any], execution_time_ms: int) -> QueryResult:
        return cls(
            data=rows,
            metadata=QueryMetadata(
                execution_time_ms=execution_time_ms,
                row_count=len(rows),
            ),
        )

    @classmethod
    def from_error(cls, error: BaseException) -> QueryResult:
        """Build the error envelope a presentation layer reports to callers."""
        return cls(
            data=[],
            metadata=QueryMetadata(
                error=str(error) or type(error).__name__,
                error_type=type(error).__name__,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ConnectionStatus(BaseModel):
    """Snapshot of both backend connections, derived on every request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connected: bool = Field(description="True when at least one backend is connected")
    neo4j_connected: bool = Field(alias="neo4jConnected")
    gremlin_connected: bool = Field(alias="gremlinConnected")
    connection_error: str | None = Field(default=None, alias="connectionError")
    fallback_mode: bool = Field(
        default=False,
        alias="fallbackMode",
        description="Always False: failures are never masked with synthetic data",
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
