"""
Command-line entry point for puppygraph-bridge.

Examples:
    puppygraph-bridge status
    puppygraph-bridge schema
    puppygraph-bridge query --language cypher "MATCH (n) RETURN n LIMIT 5"
    puppygraph-bridge query --language gremlin "g.V().has('name', name)" \\
        --params '{"name": "marko"}'

Results are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any

from puppygraph_bridge.core.config import BridgeConfig, Settings, get_settings
from puppygraph_bridge.core.logging import (
    correlation_scope,
    parse_log_level,
    setup_structured_logging,
)
from puppygraph_bridge.graph.exceptions import GraphBridgeError
from puppygraph_bridge.models import QueryResult
from puppygraph_bridge.services.puppygraph import PuppyGraphService

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def _json_object(value: str) -> dict[str, Any]:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("parameters must be a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="puppygraph-bridge",
        description="Query PuppyGraph with Cypher or Gremlin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    query = subparsers.add_parser("query", help="Execute a Cypher or Gremlin query")
    query.add_argument("query", help="The query to execute")
    query.add_argument(
        "--language",
        choices=("cypher", "gremlin"),
        required=True,
        help="The query language to use",
    )
    query.add_argument(
        "--params",
        type=_json_object,
        default={},
        help="Query parameters as a JSON object",
    )

    subparsers.add_parser("schema", help="Show schema and structure information")
    subparsers.add_parser("status", help="Show connection status")
    return parser


async def run_command(
    args: argparse.Namespace,
    service: PuppyGraphService,
    config: BridgeConfig,
) -> tuple[dict[str, Any], int]:
    """Dispatch one parsed command to the service.

    Returns:
        JSON-serializable payload and process exit code
    """
    if args.command == "query":
        run = service.run_gremlin if args.language == "gremlin" else service.run_cypher
        try:
            result = await run(args.query, args.params)
        except GraphBridgeError as e:
            logger.error("Error executing %s query: %s", args.language, e)
            return QueryResult.from_error(e).to_dict(), 1
        return result.to_dict(), 0

    if args.command == "schema":
        try:
            return await service.fetch_schema(), 0
        except GraphBridgeError as e:
            logger.error("Error fetching schema information: %s", e)
            return {"metadata": {"error": str(e), "error_type": type(e).__name__}}, 1

    status = service.get_status()
    return {
        "status": "connected" if status.connected else "disconnected",
        "neo4j_connected": status.neo4j_connected,
        "gremlin_connected": status.gremlin_connected,
        "fallback_mode": status.fallback_mode,
        "error": status.connection_error,
        "puppygraph_url": config.neo4j.url,
        "puppygraph_database": config.neo4j.database or "default",
    }, 0


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    config = settings.to_bridge_config()
    _cancel_on_signals(asyncio.current_task())

    try:
        async with PuppyGraphService(config) as service:
            payload, exit_code = await run_command(args, service, config)
    except asyncio.CancelledError:
        logger.warning("Interrupted, connections closed")
        return EXIT_INTERRUPTED

    print(json.dumps(payload, indent=2, default=str))
    return exit_code


def _cancel_on_signals(task: asyncio.Task[Any] | None) -> None:
    if task is None:
        return
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, task.cancel)
        except NotImplementedError:
            logger.debug("Signal handlers unsupported on this platform")
            return


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    setup_structured_logging(
        log_file_path=settings.log_file,
        log_level=parse_log_level(settings.log_level),
    )
    with correlation_scope():
        return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
