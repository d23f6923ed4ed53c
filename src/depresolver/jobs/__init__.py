"""Job lifecycle: persistence and the background resolution pipeline."""

from .orchestrator import Orchestrator
from .store import FileJobStore, JobStore, MemoryJobStore

__all__ = [
    "FileJobStore",
    "JobStore",
    "MemoryJobStore",
    "Orchestrator",
]
