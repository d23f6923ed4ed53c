"""Tests for the package research service."""

import asyncio

from fakes import FakeRegistry, FakeSearch, make_metadata

from depresolver.common.cache import PackageCache
from depresolver.models import DeprecationAnalysis, PackageResearchResult, ResearchFailure
from depresolver.research import PackageResearchService, describe_research


class TestResearch:
    """Tests for single-package research."""

    def test_builtin_skips_registry_and_cache(self, research_service, registry, cache):
        result = asyncio.run(research_service.research("imp"))
        assert result.ok is True
        assert result.registry.latest_version == "built-in"
        assert result.deprecation_analysis.is_deprecated is True
        assert registry.calls == []
        assert cache.stats()["total_entries"] == 0

    def test_lookup_cached_by_case_folded_name(self, research_service, registry, cache):
        first = asyncio.run(research_service.research("requests"))
        second = asyncio.run(research_service.research("Requests"))
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.registry.latest_version == "2.31.0"
        assert registry.calls == ["requests"]
        assert cache.get("REQUESTS")["success"] is True

    def test_failure_isolated_and_not_cached(self, research_service, cache):
        result = asyncio.run(research_service.research("not-a-real-package"))
        assert isinstance(result, ResearchFailure)
        assert result.ok is False
        assert "not found on PyPI" in result.error
        assert cache.get("not-a-real-package") is None

    def test_unsuccessful_cache_entry_refetched(self, research_service, registry, cache):
        cache.set("flask", {"success": False, "error": "stale"})
        result = asyncio.run(research_service.research("flask"))
        assert result.from_cache is False
        assert registry.calls == ["flask"]
        assert cache.get("flask")["success"] is True

    def test_cache_entry_without_latest_version_refetched(self, research_service, registry, cache):
        stale = make_metadata("flask", "").to_dict()
        cache.set("flask", {"success": True, "package": stale})
        result = asyncio.run(research_service.research("flask"))
        assert result.registry.latest_version == "3.0.0"
        assert registry.calls == ["flask"]

    def test_web_evidence_when_search_configured(self, knowledge):
        search = FakeSearch()
        service = PackageResearchService(
            FakeRegistry({"nose": "1.3.7"}), PackageCache(), knowledge, search=search
        )
        result = asyncio.run(service.research("nose"))
        assert result.deprecation_search.total_results == 1
        assert result.alternatives_search.total_results == 1
        assert len(search.queries) == 2

    def test_no_web_evidence_by_default(self, research_service):
        result = asyncio.run(research_service.research("nose"))
        assert result.deprecation_search is None
        assert result.alternatives_search is None


class TestResearchMany:
    """Tests for multi-package research."""

    def test_deduplicates_case_insensitively(self, research_service, registry):
        results = asyncio.run(research_service.research_many(["requests", "Requests", "flask"]))
        assert list(results) == ["requests", "flask"]
        assert registry.calls == ["requests", "flask"]

    def test_one_failure_does_not_stop_others(self, research_service):
        results = asyncio.run(research_service.research_many(["ghost", "django"]))
        assert results["ghost"].ok is False
        assert results["django"].ok is True
        assert results["django"].registry.latest_version == "5.0.1"


class TestDescribeResearch:
    """Tests for the human-readable research summary."""

    def test_failure(self):
        assert describe_research(ResearchFailure(name="x", error="boom")) == "Error: boom"

    def test_deprecated_with_alternatives(self, knowledge):
        result = PackageResearchResult(
            name="nose",
            registry=make_metadata("nose", "1.3.7", release_count=12),
            deprecation_analysis=knowledge.analyze("nose"),
        )
        assert describe_research(result) == (
            "PyPI package with 12 versions. DEPRECATED (confidence: 95%). Consider: pytest, unittest."
        )

    def test_builtin_warning_free(self, knowledge):
        result = PackageResearchResult(
            name="json",
            registry=knowledge.builtin_metadata("json"),
            deprecation_analysis=DeprecationAnalysis.not_deprecated(),
        )
        assert describe_research(result) == "Python built-in module. No specific issues found."

    def test_warning_surfaced(self, knowledge):
        result = PackageResearchResult(
            name="setuptools",
            registry=make_metadata("setuptools", "69.0.3", release_count=3),
            deprecation_analysis=knowledge.analyze("setuptools"),
        )
        assert describe_research(result) == (
            "PyPI package with 3 versions. Warning: Ensure you're using a recent version (>=65.0)."
        )
