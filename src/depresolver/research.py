"""Package research: registry metadata, deprecation analysis and web evidence.

Failures are isolated per package. A lookup failure for one name becomes a
ResearchFailure value and never stops research for the other names.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from depresolver.analysis.deprecation import DeprecationKnowledge
from depresolver.common.cache import PackageCache
from depresolver.common.logging_utils import extra_context, is_debug_enabled
from depresolver.constants import Constants
from depresolver.errors import PerPackageLookupError
from depresolver.models import (
    PackageResearchResult,
    RegistryMetadata,
    ResearchFailure,
    ResearchOutcome,
    SearchOutcome,
    utc_now_iso,
)
from depresolver.registry.pypi import PyPIClient
from depresolver.registry.search import WebSearchClient

logger = logging.getLogger(__name__)


def _valid_cache_entry(cached: Any) -> bool:
    """A usable entry has a package block with a non-empty latest version."""
    if not isinstance(cached, dict) or not cached.get("success"):
        return False
    package = cached.get("package")
    return isinstance(package, dict) and bool(package.get("latest_version"))


class PackageResearchService:
    """Researches packages one at a time against the registry."""

    def __init__(
        self,
        registry: PyPIClient,
        cache: PackageCache,
        knowledge: DeprecationKnowledge,
        search: Optional[WebSearchClient] = None,
        cache_ttl: Optional[int] = None,
    ):
        self._registry = registry
        self._cache = cache
        self._knowledge = knowledge
        self._search = search
        self._cache_ttl = cache_ttl

    @property
    def knowledge(self) -> DeprecationKnowledge:
        return self._knowledge

    def _from_cache(self, name: str) -> Optional[RegistryMetadata]:
        cached = self._cache.get(name)
        if cached is None:
            return None
        if _valid_cache_entry(cached):
            try:
                return RegistryMetadata.from_dict(cached["package"])
            except (TypeError, KeyError, ValueError) as exc:
                logger.debug("Cached entry for %s does not deserialize: %s", name, exc)
        logger.info("Cache data invalid, will re-fetch for %s", name)
        self._cache.invalidate(name)
        return None

    async def _web_evidence(self, name: str) -> Tuple[Optional[SearchOutcome], Optional[SearchOutcome]]:
        if self._search is None:
            return None, None
        deprecation = await self._search.search(f"{name} python package deprecated unmaintained")
        alternatives = await self._search.search(f"{name} python package alternatives replacement")
        return deprecation, alternatives

    async def research(self, package_name: str) -> ResearchOutcome:
        """Research one package.

        Built-in modules are answered from the deprecation table without a
        registry call and are never cached.
        """
        name = package_name.strip()
        if self._knowledge.is_builtin(name):
            logger.debug("%s is a built-in module; skipping registry lookup", name)
            return PackageResearchResult(
                name=name,
                registry=self._knowledge.builtin_metadata(name),
                deprecation_analysis=self._knowledge.analyze(name),
            )

        metadata = self._from_cache(name)
        from_cache = metadata is not None
        if metadata is None:
            try:
                metadata = await self._registry.lookup(name)
            except PerPackageLookupError as exc:
                logger.warning("Error researching package %s: %s", name, exc)
                return ResearchFailure(name=name, error=str(exc))
            self._cache.set(
                name,
                {"success": True, "package": metadata.to_dict(), "fetched_at": utc_now_iso()},
                ttl=self._cache_ttl,
            )

        analysis = self._knowledge.analyze(name)
        deprecation_search, alternatives_search = await self._web_evidence(name)
        result = PackageResearchResult(
            name=name,
            registry=metadata,
            deprecation_analysis=analysis,
            deprecation_search=deprecation_search,
            alternatives_search=alternatives_search,
            from_cache=from_cache,
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Package research completed",
                extra=extra_context(
                    event="research",
                    component="research",
                    package=name,
                    outcome="cache_hit" if from_cache else "fetched",
                    is_deprecated=analysis.is_deprecated,
                ),
            )
        return result

    async def research_many(self, package_names: Iterable[str]) -> Dict[str, ResearchOutcome]:
        """Research each distinct name in turn, keyed by case-folded name.

        Lookups run one after another; latency grows linearly with the
        number of distinct packages.
        """
        results: Dict[str, ResearchOutcome] = {}
        for name in package_names:
            key = name.strip().lower()
            if key in results:
                continue
            results[key] = await self.research(name)

        failed = sum(1 for r in results.values() if not r.ok)
        logger.info(
            "Package research completed: %d packages, %d successful, %d failed",
            len(results), len(results) - failed, failed,
        )
        return results


def describe_research(outcome: ResearchOutcome) -> str:
    """One-paragraph human summary of a research outcome."""
    if isinstance(outcome, ResearchFailure):
        return f"Error: {outcome.error}"

    parts = []
    registry = outcome.registry
    if registry.source == Constants.BUILTIN_VERSION:
        parts.append("Python built-in module.")
    else:
        parts.append(f"PyPI package with {registry.release_count} versions.")

    analysis = outcome.deprecation_analysis
    if analysis.is_deprecated:
        parts.append(f"DEPRECATED (confidence: {round(analysis.confidence * 100)}%).")
        if analysis.alternatives:
            parts.append(f"Consider: {', '.join(analysis.alternatives)}.")
    elif analysis.warning:
        parts.append(f"Warning: {analysis.warning}.")

    if len(parts) == 1:
        parts.append("No specific issues found.")
    return " ".join(parts)
