"""Tests for version assignment and conflict detection."""

import asyncio

import pytest
from fakes import FakeRegistry, make_metadata

from depresolver.common.cache import PackageCache
from depresolver.models import Requirement, ResearchFailure
from depresolver.requirements import parse_requirement_string
from depresolver.research import PackageResearchService
from depresolver.resolution import ResolutionEngine, assign_version


def _resolve(knowledge, research_service, specs):
    requirements = [parse_requirement_string(s) for s in specs]
    names = []
    for req in requirements:
        if req.name not in names:
            names.append(req.name)
    results = asyncio.run(research_service.research_many(names))
    return ResolutionEngine(knowledge).resolve(requirements, results)


class TestAssignVersion:
    """Tests for the per-operator version policy."""

    @pytest.mark.parametrize("spec,expected", [
        ("requests==2.25.1", "2.25.1"),
        ("requests>=2.0", "2.31.0"),
        ("requests>2.0", "2.31.0"),
        ("requests<=2.0", "2.31.0"),
        ("requests~=2.0", "2.31.0"),
        ("requests!=2.30.0", "2.31.0"),
        ("requests", "2.31.0"),
    ])
    def test_operator_policy(self, spec, expected):
        assert assign_version(parse_requirement_string(spec), make_metadata("requests", "2.31.0")) == expected

    def test_exact_pin_not_checked_against_registry(self):
        req = parse_requirement_string("requests==99.0.0")
        assert assign_version(req, make_metadata("requests", "2.31.0")) == "99.0.0"

    def test_lower_bound_falls_back_to_requested(self):
        req = parse_requirement_string("requests>=2.0")
        assert assign_version(req, make_metadata("requests", "")) == "2.0"


class TestResolutionEngine:
    """End-to-end resolution over research results."""

    def test_lower_bound_takes_latest(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["requests>=2.28.0"])
        assert result.success is True
        assert [(p.name, p.version) for p in result.resolved_packages] == [("requests", "2.31.0")]
        assert result.conflicts == []
        assert result.error is None

    def test_exact_pin_is_verbatim(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["django==3.2.5"])
        assert result.resolved_packages[0].version == "3.2.5"
        assert result.success is True

    def test_deprecated_package_resolved_and_flagged(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["nose"])
        assert result.success is True
        assert [p.name for p in result.resolved_packages] == ["nose"]
        entry = result.deprecated_packages[0]
        assert entry.name == "nose"
        assert entry.version == "1.3.7"
        assert entry.suggested_alternative == "pytest"
        assert "maintenance mode" in entry.reason

    def test_unknown_package_becomes_warning(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["not-a-real-package"])
        assert result.success is False
        assert result.resolved_packages == []
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Could not find package 'not-a-real-package': ")
        assert result.error == "No packages could be resolved"

    def test_partial_failure_still_succeeds(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["ghost", "flask"])
        assert result.success is True
        assert [p.name for p in result.resolved_packages] == ["flask"]
        assert len(result.warnings) == 1

    def test_duplicate_name_is_conflict(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["Requests>=2.0", "requests==2.25.0"])
        assert result.success is False
        assert [(p.name, p.version) for p in result.resolved_packages] == [("Requests", "2.31.0")]
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.packages == ["Requests"]
        assert conflict.reason == (
            "Multiple requirements for the same package found: Requests>=2.0, requests==2.25.0"
        )
        assert result.error == "Found 1 conflicts"

    def test_builtin_needs_no_research(self, knowledge):
        requirements = [parse_requirement_string("imp")]
        result = ResolutionEngine(knowledge).resolve(requirements, {})
        assert result.resolved_packages[0].version == "built-in"
        assert result.deprecated_packages[0].suggested_alternative == "importlib"
        assert result.success is True

    def test_input_order_preserved(self, knowledge, research_service):
        result = _resolve(knowledge, research_service, ["flask", "django", "requests"])
        assert [p.name for p in result.resolved_packages] == ["flask", "django", "requests"]

    def test_failure_value_uses_its_message(self, knowledge):
        requirements = [parse_requirement_string("broken")]
        results = {"broken": ResearchFailure(name="broken", error="PyPI API error (403)")}
        result = ResolutionEngine(knowledge).resolve(requirements, results)
        assert result.warnings == ["Could not find package 'broken': PyPI API error (403)"]


class TestScenarios:
    """Reference scenarios with a fixed registry."""

    @pytest.fixture
    def service(self, knowledge):
        registry = FakeRegistry({"numpy": "1.24.3", "pandas": "2.0.1", "django": "5.0.1"})
        return PackageResearchService(registry, PackageCache(), knowledge)

    def test_unpinned_and_lower_bound(self, knowledge, service):
        requirements = [Requirement(name="numpy"), Requirement(name="pandas", operator=">=", version="1.3.0")]
        results = asyncio.run(service.research_many(["numpy", "pandas"]))
        result = ResolutionEngine(knowledge).resolve(requirements, results)
        assert [(p.name, p.version) for p in result.resolved_packages] == [
            ("numpy", "1.24.3"), ("pandas", "2.0.1"),
        ]
        assert result.conflicts == []
        assert result.success is True

    def test_conflicting_django_requirements(self, knowledge, service):
        requirements = [
            Requirement(name="django", operator=">=", version="4.0"),
            Requirement(name="django", operator="==", version="3.2"),
        ]
        results = asyncio.run(service.research_many(["django"]))
        result = ResolutionEngine(knowledge).resolve(requirements, results)
        assert len(result.conflicts) == 1
        assert result.conflicts[0].packages == ["django"]
        assert result.success is False

    def test_deprecated_builtin(self, knowledge, service):
        results = asyncio.run(service.research_many(["imp"]))
        result = ResolutionEngine(knowledge).resolve([Requirement(name="imp")], results)
        assert [(p.name, p.version) for p in result.resolved_packages] == [("imp", "built-in")]
        entry = result.deprecated_packages[0]
        assert (entry.name, entry.version) == ("imp", "built-in")
        assert "imp module is deprecated" in entry.reason
        assert entry.suggested_alternative == "importlib"

    def test_missing_package(self, knowledge, service):
        results = asyncio.run(service.research_many(["nonexistent-package-xyz"]))
        result = ResolutionEngine(knowledge).resolve([Requirement(name="nonexistent-package-xyz")], results)
        assert result.resolved_packages == []
        assert "could not find" in result.warnings[0].lower()
        assert result.success is False
