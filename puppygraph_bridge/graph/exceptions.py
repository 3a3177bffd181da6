"""
Custom exceptions for the graph module.

Exception naming avoids shadowing Python builtins (ConnectionError,
TimeoutError): every backend failure is a GraphBridgeError subclass.
"""

from __future__ import annotations


class GraphBridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize with message and optional cause.

        Args:
            message: Human-readable error description
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.cause = cause


class GraphConnectionError(GraphBridgeError):
    """Raised inside connect() when a backend is unreachable or rejects auth.

    Never escapes connect(): the message is recorded as the client's
    connection error so status requests can report it.
    """


class NotConnectedError(GraphBridgeError):
    """Raised when a query is attempted without a live backend."""


class BackendUnavailableError(NotConnectedError):
    """Raised by the service when the single reconnect attempt also failed."""


class QueryRejectedError(GraphBridgeError):
    """Base for scripts refused before reaching a backend."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.query = query


class UnsupportedQueryShapeError(QueryRejectedError):
    """Raised when a traversal script is not a traversal-source step chain."""


class UnsafeQueryError(QueryRejectedError):
    """Raised when a traversal script contains a denylisted token."""


class QueryExecutionError(GraphBridgeError):
    """Raised when a query fails on an established connection.

    The original backend message is preserved in the message and in
    ``cause``; ``language`` names the query language involved.
    """

    def __init__(
        self,
        message: str,
        language: str,
        query: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.language = language
        self.query = query


class SchemaHTTPError(GraphBridgeError):
    """Raised when the schema endpoint answers with a non-success status."""

    def __init__(self, status_code: int, url: str | None = None) -> None:
        super().__init__(f"HTTP error! Status: {status_code}")
        self.status_code = status_code
        self.url = url


class SchemaUnavailableError(GraphBridgeError):
    """Raised when every schema tier has failed."""

    def __init__(
        self,
        message: str,
        tier_errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.tier_errors = tier_errors or {}
