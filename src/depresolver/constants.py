"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    JOB_FAILED = 3
    GAVE_UP = 4


class JobStatus(Enum):
    """Lifecycle states of a resolution job.

    There is no cancelled state: a failed job is terminal and must be
    resubmitted as a new job.
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True once the job can no longer change state."""
        return self is not JobStatus.PROCESSING


class Operators:  # pylint: disable=too-few-public-methods
    """Version comparison operators accepted on a requirement."""

    NONE = ""
    EXACT = "=="
    GTE = ">="
    GT = ">"
    LTE = "<="
    LT = "<"
    NE = "!="
    COMPATIBLE = "~="
    ARBITRARY = "==="
    ALL = [NONE, EXACT, GTE, GT, LTE, LT, NE, COMPATIBLE, ARBITRARY]


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_PYPI = "https://pypi.org/pypi/"
    PROJECT_URL_PYPI = "https://pypi.org/project/"
    SEARCH_URL_GOOGLE = "https://www.googleapis.com/customsearch/v1"
    USER_AGENT = "depresolver/0.4"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEPRESOLVER_LOG_LEVEL"
    ENV_STORE_DIR = "DEPRESOLVER_STORE_DIR"
    ENV_SEARCH_API_KEY = "GOOGLE_SEARCH_API_KEY"
    ENV_SEARCH_ENGINE_ID = "GOOGLE_SEARCH_ENGINE_ID"

    DEFAULT_HOST = "127.0.0.1"
    DEFAULT_PORT = 8787
    DEFAULT_PYTHON_VERSION = "3.9"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    PACKAGE_CACHE_TTL_SEC = 3600
    PACKAGE_CACHE_MAX_ENTRIES = 10000
    PIPELINE_TIMEOUT_SEC = 300
    MAX_RECENT_VERSIONS = 20
    MAX_DESCRIPTION_CHARS = 500
    MAX_CLASSIFIERS = 10
    SEARCH_MAX_RESULTS = 5

    REPORT_KEY_PREFIX = "report:"
    PACKAGE_KEY_PREFIX = "package:"

    BUILTIN_VERSION = "built-in"
    PRIMARY_SOURCE = "pypi"
    UNKNOWN_VERSION = "unknown"
    UNRESOLVED_VERSION = "unresolved"

    POLL_INTERVAL_SEC = 2.0
    POLL_GIVE_UP_SEC = 120.0


def report_key(job_id: str) -> str:
    """Return the job store key for a job ID."""
    return f"{Constants.REPORT_KEY_PREFIX}{job_id}"


def package_key(name: str) -> str:
    """Return the cache key for a package name (case-folded)."""
    return f"{Constants.PACKAGE_KEY_PREFIX}{name.strip().lower()}"
