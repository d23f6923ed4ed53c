"""HTTP service using aiohttp."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from typing import Any, Dict, Optional

from aiohttp import web

from depresolver.analysis.deprecation import DeprecationKnowledge, load_default_knowledge
from depresolver.common.cache import PackageCache
from depresolver.common.logging_utils import redact
from depresolver.config import ServiceConfig
from depresolver.errors import StorageError, ValidationError
from depresolver.jobs.orchestrator import Orchestrator
from depresolver.jobs.store import FileJobStore, JobStore, MemoryJobStore
from depresolver.registry.pypi import PyPIClient
from depresolver.registry.search import WebSearchClient
from depresolver.report import ReportCompiler
from depresolver.requirements import build_request
from depresolver.research import PackageResearchService, describe_research
from depresolver.resolution import ResolutionEngine
from depresolver.schemas import RESEARCH_INPUT
from depresolver.validate import validate_input

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = {
    "error": "Report not found",
    "message": "The requested report ID does not exist or has expired.",
}


def _error(status: int, message: str, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


class ResolverServer:
    """HTTP front for the orchestrator.

    Components can be injected for testing; anything not given is built
    from the configuration.
    """

    def __init__(
        self,
        config: ServiceConfig,
        *,
        knowledge: Optional[DeprecationKnowledge] = None,
        registry: Optional[PyPIClient] = None,
        search: Optional[WebSearchClient] = None,
        cache: Optional[PackageCache] = None,
        store: Optional[JobStore] = None,
    ):
        self._config = config
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._stop_event: Optional[asyncio.Event] = None

        if knowledge is None:
            if config.deprecations_file:
                knowledge = DeprecationKnowledge.from_file(config.deprecations_file)
            else:
                knowledge = load_default_knowledge()
        self._knowledge = knowledge

        self._cache = cache or PackageCache(
            default_ttl=config.cache_ttl, max_entries=config.cache_max_entries
        )
        self._registry = registry or PyPIClient(
            base_url=config.registry_url, timeout=config.request_timeout
        )
        if search is None and config.search_enabled:
            search = WebSearchClient(
                api_key=config.search_api_key or "",
                engine_id=config.search_engine_id or "",
                timeout=config.request_timeout,
            )
        self._search = search
        self._research = PackageResearchService(
            self._registry, self._cache, knowledge, search=search, cache_ttl=config.cache_ttl
        )
        if store is None:
            store = FileJobStore(config.store_dir) if config.store_dir else MemoryJobStore()
        self._store = store
        self._orchestrator = Orchestrator(
            store,
            self._research,
            ResolutionEngine(knowledge),
            ReportCompiler(knowledge),
            pipeline_timeout=config.pipeline_timeout,
        )

    @property
    def orchestrator(self) -> Orchestrator:
        return self._orchestrator

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application(client_max_size=2 * 1024 * 1024)
        app.router.add_post("/resolve", self._handle_resolve)
        app.router.add_get("/status", self._handle_status)
        app.router.add_get("/status/{job_id}", self._handle_status)
        app.router.add_post("/research", self._handle_research)
        app.router.add_get("/health", self._health_check)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: web.Application) -> None:
        await self._registry.start()
        if self._search is not None:
            await self._search.start()
        logger.info("Resolver service starting on %s:%s", self._config.host, self._config.port)

    async def _on_cleanup(self, app: web.Application) -> None:
        await self._orchestrator.shutdown()
        await self._registry.stop()
        if self._search is not None:
            await self._search.stop()
        logger.info("Resolver service stopped")

    async def _read_json(self, request: web.Request) -> Any:
        try:
            return await request.json()
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Request body is not valid JSON: {exc.msg}") from exc

    async def _handle_resolve(self, request: web.Request) -> web.Response:
        try:
            payload = await self._read_json(request)
            resolution_request = build_request(payload)
            logger.info(
                "Resolution request parsed: %d requirements, python %s",
                len(resolution_request.requirements),
                resolution_request.python_version,
            )
            accepted = await self._orchestrator.submit(resolution_request)
        except ValidationError as exc:
            logger.warning("Rejected submission: %s", exc)
            return _error(400, str(exc))
        except StorageError as exc:
            logger.error("Could not admit job: %s", exc)
            return _error(500, "Failed to create job")
        return web.json_response(accepted)

    async def _handle_status(self, request: web.Request) -> web.Response:
        job_id = request.match_info.get("job_id") or request.query.get("id")
        if not job_id:
            return _error(400, "Missing job id")
        try:
            data = await self._orchestrator.status(job_id)
        except StorageError as exc:
            logger.error("Failed to retrieve report status for %s: %s", job_id, exc)
            return _error(500, "Failed to retrieve report")
        if data is None:
            return web.json_response(NOT_FOUND_BODY, status=404)
        return web.json_response(data)

    async def _handle_research(self, request: web.Request) -> web.Response:
        try:
            payload = await self._read_json(request)
            validate_input(RESEARCH_INPUT, payload)
        except ValidationError as exc:
            return _error(400, str(exc))

        names = payload.get("package_names")
        if names:
            results = await self._research.research_many(names)
            return web.json_response({
                "packages": {outcome.name: outcome.to_dict() for outcome in results.values()},
                "count": len(results),
            })

        outcome = await self._research.research(payload["package_name"])
        return web.json_response({
            "package": payload["package_name"],
            "research": outcome.to_dict(),
            "analysis": describe_research(outcome),
        })

    async def _health_check(self, request: web.Request) -> web.Response:
        return web.json_response(self.health())

    def health(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "active_jobs": self._orchestrator.active_jobs,
            "cache": self._cache.stats(),
            "store": self._store.stats(),
            "deprecation_table": self._knowledge.stats(),
            "web_search": self._search is not None,
        }

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()
        logger.info(
            "depresolver listening on http://%s:%s", self._config.host, self._config.port
        )
        logger.info("Registry: %s", self._config.registry_url)
        logger.info(
            "Job store: %s", self._config.store_dir or "in-memory (jobs are lost on restart)"
        )
        if self._config.search_enabled:
            logger.info("Web search enabled (key %s)", redact(self._config.search_api_key))

    async def run_forever(self) -> None:
        """Start the server and run until interrupted."""
        await self.start()
        self._stop_event = asyncio.Event()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_server_sync(config: ServiceConfig) -> None:
    """Run the service until SIGTERM or SIGINT.

    Args:
        config: Service configuration.
    """
    server = ResolverServer(config)
    loop = asyncio.new_event_loop()

    async def run():
        await server.start()
        stop_event = asyncio.Event()
        running_loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            running_loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
        await server.stop()

    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work (Windows)
        loop.run_until_complete(server.stop())
    finally:
        loop.close()
        logger.info("Resolver service shutdown complete")
