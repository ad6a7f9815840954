"""Command-line interface for the traffic flow service."""

import argparse
import logging
import os
import sys

import uvicorn
from pydantic import ValidationError

from trafficflow import __version__
from trafficflow.config import get_flow_config
from trafficflow.logging_config import configure_logging, get_log_level

logger = logging.getLogger(__name__)

# CLI flags that map onto FlowConfig environment variables.
_CONFIG_OVERRIDES = {
    "overpass_url": "OVERPASS_URL",
    "particles": "PARTICLE_TARGET_COUNT",
    "frame_rate": "FRAME_RATE",
    "debounce": "DEBOUNCE_SECONDS",
    "retries": "GEODATA_MAX_RETRIES",
    "seed": "RANDOM_SEED",
}


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``trafficflow`` command."""
    parser = argparse.ArgumentParser(
        prog="trafficflow",
        description="Traffic Flow - animated traffic particles over live road geometry",
    )
    server = parser.add_argument_group("server")
    server.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    server.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    server.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    logs = parser.add_argument_group("logging")
    logs.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log output format (default: LOG_FORMAT or text)",
    )
    logs.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )

    flow = parser.add_argument_group("flow", "override the matching environment settings")
    flow.add_argument("--overpass-url", help="Overpass interpreter endpoint")
    flow.add_argument("--particles", type=int, help="Particles seeded per acquisition")
    flow.add_argument("--frame-rate", type=float, help="Simulation ticks per second")
    flow.add_argument("--debounce", type=float, help="Quiet window after viewport moves (s)")
    flow.add_argument("--retries", type=int, help="Attempts per geodata query")
    flow.add_argument("--seed", type=int, help="Seed for particle randomness")

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def apply_overrides(parsed: argparse.Namespace) -> list[str]:
    """Export flow flags as environment variables for the server process.

    The app is loaded by import string (so ``--reload`` works), so settings
    travel through the environment rather than as objects.

    Returns:
        Names of the environment variables that were set.
    """
    applied = []
    for attr, env_var in _CONFIG_OVERRIDES.items():
        value = getattr(parsed, attr)
        if value is not None:
            os.environ[env_var] = str(value)
            applied.append(env_var)
    if applied:
        get_flow_config.cache_clear()
    return applied


def main(args: list[str] | None = None) -> int:
    """Run the traffic flow server.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, 2 for invalid configuration).
    """
    parsed = build_parser().parse_args(args)

    if parsed.log_level is not None:
        os.environ["LOG_LEVEL"] = parsed.log_level
    configure_logging(level=get_log_level(), format_type=parsed.log_format)

    applied = apply_overrides(parsed)
    try:
        config = get_flow_config()
    except ValidationError as e:
        logger.error("Invalid flow configuration: %s", e)
        print(f"trafficflow: invalid configuration\n{e}", file=sys.stderr)
        return 2
    if applied:
        logger.info("Command-line overrides: %s", ", ".join(applied))

    print(f"Starting Traffic Flow server at http://{parsed.host}:{parsed.port}")
    print(f"Road data from {config.overpass_url}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "trafficflow.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
        log_config=None,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
