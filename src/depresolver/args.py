"""Argument parsing for the depresolver command line."""

import argparse

from depresolver import __version__
from depresolver.constants import Constants


def _add_logging_args(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def _add_server_url_arg(parser):
    parser.add_argument("-s", "--server",
                        dest="SERVER_URL",
                        help=(
                            "Base URL of a running resolver service "
                            f"(default: http://{Constants.DEFAULT_HOST}:{Constants.DEFAULT_PORT})"
                        ),
                        action="store",
                        type=str,
                        default=f"http://{Constants.DEFAULT_HOST}:{Constants.DEFAULT_PORT}")


def _add_poll_args(parser):
    parser.add_argument("--poll-interval",
                        dest="POLL_INTERVAL",
                        help=f"Seconds between status checks (default: {Constants.POLL_INTERVAL_SEC:g})",
                        action="store",
                        type=float,
                        default=Constants.POLL_INTERVAL_SEC)
    parser.add_argument("--give-up-after",
                        dest="GIVE_UP_AFTER",
                        help=(
                            "Stop polling after this many seconds; the job keeps "
                            f"running on the server (default: {Constants.POLL_GIVE_UP_SEC:g})"
                        ),
                        action="store",
                        type=float,
                        default=Constants.POLL_GIVE_UP_SEC)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the finished report as JSON to this path",
                        action="store",
                        type=str)
    parser.add_argument("--manifest",
                        dest="MANIFEST",
                        help="Write the pinned requirements manifest to this path",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="depresolver",
        description="depresolver - asynchronous Python dependency resolution service",
        add_help=True,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="command")
    subparsers.required = True

    serve = subparsers.add_parser("serve", help="Run the resolver HTTP service")
    serve.add_argument("-c", "--config",
                       dest="CONFIG",
                       help="YAML configuration file",
                       action="store",
                       type=str)
    serve.add_argument("--host",
                       dest="HOST",
                       help=f"Bind address (default: {Constants.DEFAULT_HOST})",
                       action="store",
                       type=str)
    serve.add_argument("--port",
                       dest="PORT",
                       help=f"Bind port (default: {Constants.DEFAULT_PORT})",
                       action="store",
                       type=int)
    serve.add_argument("--allow-external",
                       dest="ALLOW_EXTERNAL",
                       help="Allow binding to a non-loopback address",
                       action="store_true")
    serve.add_argument("--registry-url",
                       dest="REGISTRY_URL",
                       help=f"Package registry JSON API base URL (default: {Constants.REGISTRY_URL_PYPI})",
                       action="store",
                       type=str)
    serve.add_argument("--cache-ttl",
                       dest="CACHE_TTL",
                       help=f"Package cache TTL in seconds (default: {Constants.PACKAGE_CACHE_TTL_SEC})",
                       action="store",
                       type=int)
    serve.add_argument("--store-dir",
                       dest="STORE_DIR",
                       help="Persist job records as JSON files in this directory",
                       action="store",
                       type=str)
    serve.add_argument("--pipeline-timeout",
                       dest="PIPELINE_TIMEOUT",
                       help=(
                           "Fail a job whose pipeline runs longer than this many seconds; "
                           f"0 disables (default: {Constants.PIPELINE_TIMEOUT_SEC})"
                       ),
                       action="store",
                       type=float)
    serve.add_argument("--deprecations-file",
                       dest="DEPRECATIONS_FILE",
                       help="YAML deprecation table replacing the bundled one",
                       action="store",
                       type=str)
    _add_logging_args(serve)

    submit = subparsers.add_parser("submit", help="Submit requirements for resolution")
    input_group = submit.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-r", "--requirements",
                             dest="REQUIREMENTS_FILE",
                             help="Load requirements from a requirements.txt style file",
                             action="store",
                             type=str)
    input_group.add_argument("-p", "--package",
                             dest="PACKAGES",
                             help="A requirement specifier, e.g. 'requests>=2.28.0'. Repeatable.",
                             action="append",
                             type=str)
    submit.add_argument("--python-version",
                        dest="PYTHON_VERSION",
                        help=f"Target Python version (default: {Constants.DEFAULT_PYTHON_VERSION})",
                        action="store",
                        type=str,
                        default=Constants.DEFAULT_PYTHON_VERSION)
    submit.add_argument("--allow-prereleases",
                        dest="ALLOW_PRERELEASES",
                        help="Allow pre-release versions",
                        action="store_true")
    submit.add_argument("--no-wait",
                        dest="NO_WAIT",
                        help="Print the job ID and exit without polling",
                        action="store_true")
    _add_server_url_arg(submit)
    _add_poll_args(submit)
    _add_logging_args(submit)

    status = subparsers.add_parser("status", help="Check a job, polling until it finishes")
    status.add_argument("JOB_ID", help="Job ID returned by submit")
    status.add_argument("--once",
                        dest="ONCE",
                        help="Print the current status and exit without polling",
                        action="store_true")
    _add_server_url_arg(status)
    _add_poll_args(status)
    _add_logging_args(status)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
