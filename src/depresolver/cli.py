"""depresolver - asynchronous Python dependency resolution service."""

import logging
import os
import sys

from depresolver.args import parse_args
from depresolver.common.logging_utils import configure_logging, extra_context, is_debug_enabled
from depresolver.constants import Constants

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging from --loglevel and --logfile."""
    # CLI level wins over the environment
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    if args.COMMAND == "serve":
        from depresolver.cli_serve import run_serve  # pylint: disable=import-outside-toplevel
        run_serve(args)
        return 0

    from depresolver import cli_client  # pylint: disable=import-outside-toplevel
    if args.COMMAND == "submit":
        return cli_client.run_submit(args)
    return cli_client.run_status(args)


if __name__ == "__main__":
    sys.exit(main())
