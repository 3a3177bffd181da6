"""
PuppyGraph schema API client.

The schema endpoint returns the authoritative SQL-to-graph mapping as
JSON; it is the first tier of PuppyGraphService.fetch_schema().
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from puppygraph_bridge.core.config import SchemaConfig
from puppygraph_bridge.graph.exceptions import SchemaHTTPError

logger = logging.getLogger(__name__)

SCHEMA_API_SOURCE = "Schema API"


async def fetch_schema_from_endpoint(
    config: SchemaConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Fetch schema information from the schema endpoint.

    Args:
        config: Endpoint URL and basic-auth credentials
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Returns:
        SchemaResult dict with the parsed body under ``schema``

    Raises:
        SchemaHTTPError: If the endpoint answers with a non-2xx status
        httpx.HTTPError: If the request itself fails
    """
    logger.info("Fetching schema from endpoint: %s", config.url)

    async with httpx.AsyncClient(transport=transport) as client:
        response = await client.get(
            config.url,
            auth=httpx.BasicAuth(config.username, config.password),
            headers={"Accept": "application/json"},
        )

    if not response.is_success:
        logger.warning(
            "Schema endpoint %s returned status %d", config.url, response.status_code
        )
        raise SchemaHTTPError(response.status_code, url=config.url)

    schema_data = response.json()
    logger.info("Successfully fetched schema from endpoint")

    return {
        "summary": "PuppyGraph Schema Information",
        "source": SCHEMA_API_SOURCE,
        "schema": schema_data,
        "schema_endpoint": config.url,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
