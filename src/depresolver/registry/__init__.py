"""Registry and web research collaborators."""

from .pypi import PyPIClient, parse_metadata
from .search import WebSearchClient

__all__ = [
    "PyPIClient",
    "WebSearchClient",
    "parse_metadata",
]
