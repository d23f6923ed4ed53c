"""Orchestrator: job admission, the background pipeline, status lookups.

Each submission writes a ``processing`` record and launches the pipeline as
a tracked background task. The task wrapper converts every way a pipeline
can end (success, exception, deadline, shutdown) into exactly one terminal
record, so no job stays ``processing`` forever.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
import uuid
from typing import Any, Callable, Dict, Optional, Set

from depresolver.common.logging_utils import Timer, extra_context, is_debug_enabled
from depresolver.constants import JobStatus
from depresolver.errors import PipelineError, PipelineTimeoutError, StorageError, ValidationError
from depresolver.jobs.store import JobStore
from depresolver.models import JobRecord, Report, ResolutionRequest
from depresolver.report import ReportCompiler
from depresolver.research import PackageResearchService
from depresolver.resolution import ResolutionEngine

logger = logging.getLogger(__name__)

SUBMIT_MESSAGE = "Dependency resolution started. Use the /status endpoint to check progress."
PROCESSING_MESSAGE = (
    "Dependency resolution is still in progress. Please check again in a few seconds."
)
SHUTDOWN_ERROR = "Pipeline cancelled during shutdown"


def _new_job_id() -> str:
    return uuid.uuid4().hex


class Orchestrator:
    """Accepts submissions and serves status/report lookups by job ID."""

    def __init__(
        self,
        store: JobStore,
        research: PackageResearchService,
        engine: ResolutionEngine,
        compiler: ReportCompiler,
        pipeline_timeout: Optional[float] = None,
        id_factory: Callable[[], str] = _new_job_id,
    ):
        """Initialize the orchestrator.

        Args:
            pipeline_timeout: Deadline in seconds for one pipeline run.
                None or 0 disables the deadline.
            id_factory: Generates opaque job IDs.
        """
        self._store = store
        self._research = research
        self._engine = engine
        self._compiler = compiler
        self._pipeline_timeout = pipeline_timeout or None
        self._id_factory = id_factory
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def submit(self, request: ResolutionRequest) -> Dict[str, Any]:
        """Admit a job and start its pipeline without waiting for it.

        Raises:
            ValidationError: if the request has no requirements.
            StorageError: if the admission record cannot be written.
        """
        if not request.requirements:
            raise ValidationError("At least one requirement is required")

        job_id = self._id_factory()
        start_time = time.time()
        record = JobRecord.admit(job_id, request)
        await self._store.put(record)

        task = asyncio.get_running_loop().create_task(
            self._supervise(record, request, start_time), name=f"pipeline-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "Resolution process started for %s (%d requirements, python %s)",
            job_id, len(request.requirements), request.python_version,
        )
        return {"id": job_id, "status": JobStatus.PROCESSING.value, "message": SUBMIT_MESSAGE}

    async def _supervise(self, record: JobRecord, request: ResolutionRequest, start_time: float) -> None:
        job_id = record.id
        try:
            try:
                report = await self._run_with_deadline(job_id, request, start_time)
            except PipelineError as exc:
                logger.error("Resolution %s failed: %s", job_id, exc)
                await self._store_failure(record, str(exc))
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.error("Resolution %s failed: %s", job_id, exc, exc_info=True)
                await self._store_failure(record, str(exc) or exc.__class__.__name__)
            else:
                await self._store_report(record, report)
        except asyncio.CancelledError:
            # Cancellation can land in any store write above.
            logger.warning("Resolution %s cancelled", job_id)
            if record.status is JobStatus.PROCESSING:
                record.fail(SHUTDOWN_ERROR)
            if record.status is JobStatus.FAILED:
                await self._write_failure(record)
            raise

    async def _run_with_deadline(self, job_id: str, request: ResolutionRequest, start_time: float) -> Report:
        if not self._pipeline_timeout:
            return await self.pipeline(job_id, request, start_time)
        try:
            return await asyncio.wait_for(
                self.pipeline(job_id, request, start_time), self._pipeline_timeout
            )
        except asyncio.TimeoutError:
            raise PipelineTimeoutError(
                f"Pipeline exceeded deadline of {self._pipeline_timeout:g}s"
            ) from None

    async def pipeline(self, job_id: str, request: ResolutionRequest, start_time: float) -> Report:
        """Run research, resolution and compilation strictly in sequence."""
        with Timer() as research_timer:
            research_results = await self._research.research_many(request.package_names)
        logger.info("Package research phase for %s took %s ms", job_id, research_timer.duration_ms())

        with Timer() as resolve_timer:
            resolution = self._engine.resolve(request.requirements, research_results)
        logger.info("Dependency resolution phase for %s took %s ms", job_id, resolve_timer.duration_ms())

        with Timer() as report_timer:
            report = self._compiler.compile(job_id, request, resolution, research_results, start_time)
        logger.info("Report generation phase for %s took %s ms", job_id, report_timer.duration_ms())

        if is_debug_enabled(logger):
            logger.debug(
                "Pipeline finished",
                extra=extra_context(
                    event="pipeline",
                    component="orchestrator",
                    job_id=job_id,
                    outcome="success" if resolution.success else "unresolved",
                    research_ms=research_timer.duration_ms(),
                    resolve_ms=resolve_timer.duration_ms(),
                    report_ms=report_timer.duration_ms(),
                ),
            )
        return report

    async def _store_report(self, record: JobRecord, report: Report) -> None:
        completed = copy.deepcopy(record)
        completed.complete(report.to_dict())
        try:
            await self._store.put(completed)
        except StorageError as exc:
            logger.error("Failed to store report for %s: %s", record.id, exc)
            await self._store_failure(record, f"Failed to store report: {exc}")
            return
        record.complete(completed.report)
        logger.info(
            "Resolution %s completed: success=%s in %s ms",
            record.id,
            report.resolution_result.success,
            report.metadata.processing_time_ms,
        )

    async def _store_failure(self, record: JobRecord, message: str) -> None:
        record.fail(message)
        await self._write_failure(record)

    async def _write_failure(self, record: JobRecord) -> None:
        try:
            await self._store.put(record)
        except StorageError as exc:
            logger.error(
                "Failed to store error report for %s (original error: %s): %s",
                record.id, record.error, exc,
            )
            return
        logger.warning("Error report stored for %s: %s", record.id, record.error)

    async def status(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Look up a job.

        Returns None when the ID is unknown. Otherwise the processing, failed
        or completed shape, checked in that order.

        Raises:
            StorageError: if the store cannot be read.
        """
        record = await self._store.get(job_id)
        if record is None:
            logger.info("Report %s not found", job_id)
            return None

        if record.status is JobStatus.PROCESSING:
            return {
                "id": record.id,
                "status": record.status.value,
                "created_at": record.created_at,
                "original_request": record.original_request,
                "message": PROCESSING_MESSAGE,
            }
        if record.status is JobStatus.FAILED:
            return {
                "id": record.id,
                "status": record.status.value,
                "error": record.error,
                "created_at": record.created_at,
            }
        if record.report is None:
            raise StorageError(f"Completed job {record.id} has no stored report")
        completed = dict(record.report)
        completed["status"] = record.status.value
        return completed

    async def wait_idle(self) -> None:
        """Wait until every in-flight pipeline has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace: float = 5.0) -> None:
        """Give in-flight pipelines ``grace`` seconds, then cancel the rest.

        Cancelled pipelines are recorded as failed.
        """
        if not self._tasks:
            return
        pending = list(self._tasks)
        _, still_running = await asyncio.wait(pending, timeout=grace)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelling %d in-flight pipelines", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)
