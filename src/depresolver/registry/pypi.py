"""PyPI registry client: fetch package metadata over the JSON API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from depresolver.common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from depresolver.constants import Constants
from depresolver.errors import PackageNotFoundError, RegistryError
from depresolver.models import RegistryMetadata, VersionInfo

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json", "User-Agent": Constants.USER_AGENT}
_ZERO = Version("0")


def _version_key(raw: str) -> Version:
    try:
        return Version(raw)
    except InvalidVersion:
        return _ZERO


def _truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return "No description available"
    return text if len(text) <= limit else text[:limit] + "..."


def parse_metadata(package_name: str, data: Any) -> RegistryMetadata:
    """Build RegistryMetadata from a PyPI JSON API document.

    Raises:
        RegistryError: if the document is not a JSON object.
        PackageNotFoundError: if the document carries no release information.
    """
    if not isinstance(data, dict):
        raise RegistryError(
            package_name, f"Unexpected PyPI response for '{package_name}': expected a JSON object"
        )
    info = data.get("info")
    if not isinstance(info, dict):
        info = {}
    latest = info.get("version")
    if not isinstance(latest, str) or not latest:
        raise PackageNotFoundError(
            package_name, f"Package '{package_name}' has no published releases on PyPI"
        )

    releases = data.get("releases")
    if not isinstance(releases, dict):
        releases = {}
    versions: List[VersionInfo] = []
    for version, files in releases.items():
        if not isinstance(files, list) or not files:
            continue
        first = files[0] if isinstance(files[0], dict) else {}
        upload_time = first.get("upload_time_iso_8601") or first.get("upload_time")
        versions.append(
            VersionInfo(
                version=version,
                upload_time=upload_time if isinstance(upload_time, str) else None,
                yanked=bool(first.get("yanked", False)),
                yanked_reason=first.get("yanked_reason"),
            )
        )
    versions.sort(key=lambda v: (v.upload_time or "", _version_key(v.version)), reverse=True)

    last_updated = next((v.upload_time for v in versions if v.version == latest), None)
    display_name = info.get("name") or package_name
    classifiers = info.get("classifiers")
    return RegistryMetadata(
        name=display_name,
        latest_version=latest,
        summary=info.get("summary") or "No summary available",
        description=_truncate(info.get("description"), Constants.MAX_DESCRIPTION_CHARS),
        author=info.get("author") or "Unknown",
        license=info.get("license") or "Not specified",
        home_page=info.get("home_page") or info.get("project_url") or None,
        requires_python=info.get("requires_python") or None,
        package_url=f"{Constants.PROJECT_URL_PYPI}{display_name}/",
        maintainer=info.get("maintainer") or info.get("author") or "Unknown",
        keywords=info.get("keywords") or "",
        classifiers=list(classifiers)[: Constants.MAX_CLASSIFIERS] if isinstance(classifiers, list) else [],
        release_count=len(versions),
        versions=versions[: Constants.MAX_RECENT_VERSIONS],
        last_updated=last_updated,
        source=Constants.PRIMARY_SOURCE,
    )


class PyPIClient:
    """Async client for the PyPI JSON API.

    A 404 is an expected outcome and raises PackageNotFoundError without a
    retry. Server errors and transport failures are retried with exponential
    back-off, then raised as RegistryError.
    """

    def __init__(
        self,
        base_url: str = Constants.REGISTRY_URL_PYPI,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        retry_max: int = Constants.HTTP_RETRY_MAX,
        retry_base_delay: float = Constants.HTTP_RETRY_BASE_DELAY_SEC,
    ):
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._retry_max = max(1, retry_max)
        self._retry_base_delay = retry_base_delay

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "PyPIClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def package_url(self, package_name: str) -> str:
        """JSON API URL for a package, using the PEP 503 normalized name."""
        return f"{self._base_url}{canonicalize_name(package_name)}/json"

    async def fetch_json(self, package_name: str) -> Dict[str, Any]:
        """Fetch the raw JSON document for a package."""
        if self._session is None:
            await self.start()
        assert self._session is not None

        url = self.package_url(package_name)
        last_error = "no attempt made"
        for attempt in range(self._retry_max):
            if attempt:
                await asyncio.sleep(self._retry_base_delay * (2 ** (attempt - 1)))
            with Timer() as timer:
                try:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP request",
                            extra=extra_context(
                                event="http_request",
                                component="pypi_client",
                                action="GET",
                                target=safe_url(url),
                                attempt=attempt + 1,
                            ),
                        )
                    async with self._session.get(url, headers=HEADERS_JSON) as response:
                        status = response.status
                        text = await response.text()
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    last_error = str(exc) or exc.__class__.__name__
                    logger.debug("PyPI request for %s failed: %s", package_name, last_error)
                    continue

            if status == 404:
                logger.warning(
                    "Package not found on PyPI",
                    extra=extra_context(
                        event="http_response",
                        outcome="not_found",
                        status_code=404,
                        target=safe_url(url),
                        package=package_name,
                    ),
                )
                raise PackageNotFoundError(
                    package_name,
                    f"Package '{package_name}' not found on PyPI. "
                    "Check the spelling or try a different package name.",
                )
            if status >= 500:
                last_error = f"PyPI API error ({status})"
                continue
            if status != 200:
                raise RegistryError(package_name, f"PyPI API error ({status})")

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        outcome="success",
                        status_code=status,
                        duration_ms=timer.duration_ms(),
                        package=package_name,
                    ),
                )
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise RegistryError(
                    package_name, f"Could not decode PyPI response for '{package_name}': {exc}"
                ) from exc
            if not isinstance(data, dict):
                raise RegistryError(
                    package_name,
                    f"Unexpected PyPI response for '{package_name}': expected a JSON object",
                )
            return data

        raise RegistryError(
            package_name,
            f"Failed to fetch package information after {self._retry_max} attempts: {last_error}",
        )

    async def lookup(self, package_name: str) -> RegistryMetadata:
        """Fetch and parse metadata for one package."""
        data = await self.fetch_json(package_name)
        return parse_metadata(package_name, data)
