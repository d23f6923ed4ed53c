"""Job store: key/value persistence of job records, keyed by job ID.

Both stores are last-writer-wins with no transactions; each job ID has a
single active writer (its pipeline).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from depresolver.constants import report_key
from depresolver.errors import StorageError
from depresolver.models import JobRecord

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class JobStore(ABC):
    """Abstract job store."""

    @abstractmethod
    async def put(self, record: JobRecord) -> None:
        """Write ``record``, replacing any previous record for its ID."""

    @abstractmethod
    async def get(self, job_id: str) -> Optional[JobRecord]:
        """Return the record for ``job_id`` or None when unknown."""

    def stats(self) -> Dict[str, int]:
        return {}


def _decode(job_id: str, raw: str) -> JobRecord:
    try:
        return JobRecord.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError) as exc:
        raise StorageError(f"Corrupt job record for {job_id}: {exc}") from exc


def _encode(record: JobRecord) -> str:
    try:
        return json.dumps(record.to_dict())
    except (TypeError, ValueError) as exc:
        raise StorageError(f"Job record {record.id} is not serializable: {exc}") from exc


class MemoryJobStore(JobStore):
    """In-process store. Records are kept serialized so callers never share state."""

    def __init__(self):
        self._records: Dict[str, str] = {}
        self._lock = threading.Lock()

    async def put(self, record: JobRecord) -> None:
        raw = _encode(record)
        with self._lock:
            self._records[report_key(record.id)] = raw

    async def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            raw = self._records.get(report_key(job_id))
        if raw is None:
            return None
        return _decode(job_id, raw)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"records": len(self._records)}


class FileJobStore(JobStore):
    """One JSON file per job in a directory; writes are atomic renames."""

    def __init__(self, directory: str):
        self._directory = directory
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create job store directory {directory}: {exc}") from exc

    def _path(self, job_id: str) -> Optional[str]:
        if not _SAFE_ID.match(job_id or ""):
            return None
        return os.path.join(self._directory, report_key(job_id).replace(":", "_") + ".json")

    def _write(self, path: str, raw: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(raw)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read(self, path: str) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    async def put(self, record: JobRecord) -> None:
        path = self._path(record.id)
        if path is None:
            raise StorageError(f"Invalid job ID: {record.id!r}")
        raw = _encode(record)
        try:
            await asyncio.to_thread(self._write, path, raw)
        except OSError as exc:
            logger.error("Failed to write job record %s: %s", record.id, exc)
            raise StorageError(f"Failed to write job record {record.id}: {exc}") from exc

    async def get(self, job_id: str) -> Optional[JobRecord]:
        path = self._path(job_id)
        if path is None:
            return None
        try:
            raw = await asyncio.to_thread(self._read, path)
        except OSError as exc:
            logger.error("Failed to read job record %s: %s", job_id, exc)
            raise StorageError(f"Failed to read job record {job_id}: {exc}") from exc
        if raw is None:
            return None
        return _decode(job_id, raw)

    def stats(self) -> Dict[str, int]:
        try:
            count = sum(1 for name in os.listdir(self._directory) if name.endswith(".json"))
        except OSError:
            count = -1
        return {"records": count}
