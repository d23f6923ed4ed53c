"""HTTP service exposing submission, status, research and health endpoints."""

from .server import ResolverServer, run_server_sync

__all__ = [
    "ResolverServer",
    "run_server_sync",
]
