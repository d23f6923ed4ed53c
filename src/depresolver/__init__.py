"""depresolver - asynchronous Python dependency resolution and deprecation reports."""

__version__ = "0.4.0"
