"""CLI entry point for the resolver HTTP service."""

from __future__ import annotations

import logging
import sys
from typing import Any

from depresolver.config import ServiceConfig
from depresolver.constants import ExitCodes
from depresolver.errors import BindAddressError, StorageError
from depresolver.service import run_server_sync

logger = logging.getLogger(__name__)


def run_serve(args: Any) -> None:
    """Entry point for the serve command.

    Args:
        args: Parsed CLI arguments namespace.
    """
    try:
        config = ServiceConfig.from_args(args)
    except (OSError, ValueError) as e:
        logger.error("Failed to load configuration: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    try:
        config.check_binding()
    except BindAddressError as e:
        sys.stderr.write(f"ERROR: {e}\n")
        sys.exit(ExitCodes.CONNECTION_ERROR.value)

    print(
        f"\n"
        f"  depresolver service\n"
        f"  ===================\n"
        f"  Listening: http://{config.host}:{config.port}\n"
        f"  Job store: {config.store_dir or 'in-memory'}\n"
        f"  Web search: {'enabled' if config.search_enabled else 'disabled'}\n"
        f"\n"
        f"  Submit with:\n"
        f"    depresolver submit -s http://{config.host}:{config.port} -p 'requests>=2.28'\n"
        f"\n"
        f"  Press Ctrl+C to stop\n"
    )

    try:
        run_server_sync(config)
    except StorageError as e:
        logger.error("Job store unavailable: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
