"""Command-line client: submit requirements and poll for the report.

A job keeps running on the server after the client stops polling; giving
up only ends this process.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Callable, Dict, List, Optional

from depresolver.common.http_client import safe_get, safe_post
from depresolver.constants import ExitCodes, JobStatus

logger = logging.getLogger(__name__)


def _endpoint(server_url: str, path: str) -> str:
    return server_url.rstrip("/") + path


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def load_requirements_file(file_name: str) -> str:
    """Read a requirements file, exiting with FILE_ERROR when unreadable."""
    try:
        with open(file_name, encoding="utf-8") as file:
            return file.read()
    except FileNotFoundError as e:
        logger.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except IOError as e:
        logger.error("IO error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def build_payload(args: Any) -> Dict[str, Any]:
    """Build the submission body from CLI arguments."""
    payload: Dict[str, Any] = {
        "python_version": args.PYTHON_VERSION,
        "allow_prereleases": bool(getattr(args, "ALLOW_PRERELEASES", False)),
    }
    if getattr(args, "REQUIREMENTS_FILE", None):
        payload["requirements_txt"] = load_requirements_file(args.REQUIREMENTS_FILE)
    else:
        packages: List[str] = [p.strip() for p in (args.PACKAGES or []) if p and p.strip()]
        payload["requirements"] = packages
    return payload


def submit_job(server_url: str, payload: Dict[str, Any]) -> Optional[str]:
    """Submit a job and return its ID, or None when the service rejects it."""
    res = safe_post(_endpoint(server_url, "/resolve"), context="submit", json_body=payload)
    if res.status_code != 200:
        logger.error("Submission rejected: %s", _error_message(res))
        return None
    job_id = res.json().get("id")
    logger.info("Submitted job %s", job_id)
    return job_id


def fetch_status(server_url: str, job_id: str) -> Optional[Dict[str, Any]]:
    """Return the status body for a job, or None if the service does not know it."""
    res = safe_get(_endpoint(server_url, f"/status/{job_id}"), context="status")
    if res.status_code == 404:
        return None
    if res.status_code != 200:
        logger.error("Status lookup for %s failed: %s", job_id, _error_message(res))
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    return res.json()


def poll_until_done(
    server_url: str,
    job_id: str,
    interval: float,
    give_up_after: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[Dict[str, Any]]:
    """Poll a job until it reaches a terminal state.

    Returns the final status body, the not-found body ``{"status": None}``
    when the service does not know the ID, or None after ``give_up_after``
    seconds without a terminal state.
    """
    deadline = clock() + give_up_after
    while True:
        data = fetch_status(server_url, job_id)
        if data is None:
            return {"id": job_id, "status": None}
        if data.get("status") != JobStatus.PROCESSING.value:
            return data
        if clock() + interval > deadline:
            return None
        logger.debug("Job %s still processing; next check in %ss", job_id, interval)
        sleep(interval)


def _write_outputs(args: Any, data: Dict[str, Any]) -> None:
    output = getattr(args, "OUTPUT", None)
    if output:
        with open(output, "w", encoding="utf-8") as file:
            json.dump(data, file, indent=2)
        logger.info("Report written to %s", output)
    manifest_path = getattr(args, "MANIFEST", None)
    if manifest_path and data.get("manifest_text"):
        with open(manifest_path, "w", encoding="utf-8") as file:
            file.write(data["manifest_text"])
        logger.info("Manifest written to %s", manifest_path)


def report_outcome(args: Any, job_id: str, data: Optional[Dict[str, Any]]) -> int:
    """Print the final state of a job and return the process exit code."""
    if data is None:
        logger.warning(
            "Gave up waiting for job %s; it is still running on the server. "
            "Check again with: depresolver status %s", job_id, job_id,
        )
        return ExitCodes.GAVE_UP.value

    status = data.get("status")
    if status is None:
        logger.error("Job %s not found", job_id)
        return ExitCodes.JOB_FAILED.value
    if status == JobStatus.FAILED.value:
        logger.error("Job %s failed: %s", job_id, data.get("error"))
        return ExitCodes.JOB_FAILED.value
    if status == JobStatus.PROCESSING.value:
        print(json.dumps(data, indent=2))
        return ExitCodes.SUCCESS.value

    _write_outputs(args, data)
    print(data.get("narrative_text") or json.dumps(data, indent=2))
    resolution = data.get("resolution_result") or {}
    if not resolution.get("success", False):
        logger.warning(
            "Job %s completed but resolution was unsuccessful: %s",
            job_id, resolution.get("error") or "see report",
        )
    return ExitCodes.SUCCESS.value


def run_submit(args: Any) -> int:
    """Entry point for the submit command."""
    payload = build_payload(args)
    job_id = submit_job(args.SERVER_URL, payload)
    if job_id is None:
        return ExitCodes.FILE_ERROR.value
    if getattr(args, "NO_WAIT", False):
        print(job_id)
        return ExitCodes.SUCCESS.value
    data = poll_until_done(args.SERVER_URL, job_id, args.POLL_INTERVAL, args.GIVE_UP_AFTER)
    return report_outcome(args, job_id, data)


def run_status(args: Any) -> int:
    """Entry point for the status command."""
    if getattr(args, "ONCE", False):
        data = fetch_status(args.SERVER_URL, args.JOB_ID)
        if data is None:
            data = {"id": args.JOB_ID, "status": None}
    else:
        data = poll_until_done(args.SERVER_URL, args.JOB_ID, args.POLL_INTERVAL, args.GIVE_UP_AFTER)
    return report_outcome(args, args.JOB_ID, data)
