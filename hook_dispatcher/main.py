"""Command-line entry point for the hook dispatcher."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Optional

from hook_dispatcher.adapters.http.client import create_http_client
from hook_dispatcher.adapters.rate_limit.in_memory import InMemoryWindowThrottle
from hook_dispatcher.adapters.subscription.factory import create_subscriber
from hook_dispatcher.core.config import Settings, load_settings
from hook_dispatcher.core.errors import AppError
from hook_dispatcher.core.lifecycle import run_until_cancelled
from hook_dispatcher.core.live_config import LiveRateCeiling
from hook_dispatcher.core.logging import configure_logging
from hook_dispatcher.services.dispatcher import Dispatcher
from hook_dispatcher.services.forwarder import Forwarder

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hook-dispatcher",
        description="Relay topic messages to a webhook endpoint with a per-second ceiling.",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="Path to the .env config file (defaults to .env.{APP_ENV} in the project root)",
    )
    parser.add_argument(
        "--enable-debug",
        "--enable_debug",
        dest="enable_debug",
        action="store_true",
        help="Whether to enable debug logging",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def build_dispatcher(settings: Settings) -> Dispatcher:
    """Wire the dispatcher and its collaborators from settings."""
    cfg = settings.dispatcher
    ceiling = LiveRateCeiling(cfg.concurrent_size, settings.config_file)

    return Dispatcher(
        topic=cfg.topic,
        header_name=cfg.header_name,
        expected_value=cfg.user_agent,
        forwarder=Forwarder(create_http_client(settings.http), cfg.access_endpoint),
        rate_limiter=InMemoryWindowThrottle(ceiling_source=ceiling.get_rate_ceiling),
        subscriber=create_subscriber(settings),
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(argv)

    try:
        settings = load_settings(args.config_file)
    except AppError as exc:
        configure_logging(debug=args.enable_debug)
        logger.error("startup.invalid_configuration", extra={"error_message": exc.message})
        return 1

    configure_logging(settings.log, debug=args.enable_debug)
    if args.enable_debug:
        logger.debug("startup.debug_enabled")

    try:
        dispatcher = build_dispatcher(settings)
    except AppError as exc:
        logger.error(
            "startup.build_failed",
            extra={"error_code": exc.code, "error_message": exc.message},
        )
        return 1

    try:
        run_until_cancelled(dispatcher)
    except AppError as exc:
        logger.error(
            "startup.subscribe_failed",
            extra={"error_code": exc.code, "error_message": exc.message},
        )
        return 1
    finally:
        dispatcher.forwarder.client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
