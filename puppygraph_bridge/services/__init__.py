# Service layer
"""
Service layer orchestrating the graph clients:
- PuppyGraphService: reconnect-on-demand execution, schema tiers, status
"""

from puppygraph_bridge.services.puppygraph import (
    PuppyGraphService,
    format_connection_error,
)

__all__ = [
    "PuppyGraphService",
    "format_connection_error",
]
