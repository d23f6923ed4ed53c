"""Tests for report compilation."""

import time

from fakes import make_metadata

from depresolver.models import (
    Conflict,
    DeprecatedPackageEntry,
    PackageResearchResult,
    ResearchFailure,
    ResolutionRequest,
    ResolutionResult,
    ResolvedPackage,
    VersionInfo,
)
from depresolver.report import ReportCompiler
from depresolver.requirements import parse_requirement_string


def _request(*specs):
    return ResolutionRequest(requirements=[parse_requirement_string(s) for s in specs], python_version="3.11")


class TestManifest:
    """Tests for the pinned requirements text."""

    def test_sorted_alphabetically_and_pinned(self, knowledge):
        resolution = ResolutionResult(
            success=True,
            resolved_packages=[
                ResolvedPackage("requests", "2.31.0"),
                ResolvedPackage("Django", "3.2.5"),
                ResolvedPackage("imp", "built-in"),
            ],
        )
        manifest = ReportCompiler(knowledge).render_manifest(resolution)
        body = [line for line in manifest.splitlines() if line and not line.startswith("#")]
        assert body == ["Django==3.2.5", "imp==built-in  # built-in", "requests==2.31.0"]
        assert manifest.startswith("# Python Requirements File\n")
        assert "# Total packages: 3" in manifest
        assert manifest.rstrip().endswith("# End of requirements")

    def test_without_comments(self, knowledge):
        resolution = ResolutionResult(success=True, resolved_packages=[ResolvedPackage("flask", "3.0.0")])
        assert ReportCompiler(knowledge).render_manifest(resolution, include_comments=False) == "flask==3.0.0\n"


class TestNarrative:
    """Tests for the narrative document."""

    def test_section_order(self, knowledge):
        resolution = ResolutionResult(
            success=False,
            resolved_packages=[ResolvedPackage("nose", "1.3.7")],
            deprecated_packages=[DeprecatedPackageEntry("nose", "1.3.7", "unmaintained", "pytest")],
            conflicts=[Conflict(["nose"], "Multiple requirements", "Consolidate")],
            warnings=["Could not find package 'ghost': not found"],
        )
        text = ReportCompiler(knowledge).render_narrative(_request("nose", "nose==1.3.7", "ghost"), resolution)
        headings = [line for line in text.splitlines() if line.startswith("## ")]
        assert headings == [
            "## Summary",
            "## Resolved Packages",
            "## Deprecated Packages",
            "## Conflicts",
            "## Warnings",
        ]
        assert "**Python Version:** 3.11" in text
        assert "**Total Packages:** 3" in text
        assert "**Resolution Status:** Failed" in text
        assert "- **Suggested Alternative:** pytest" in text
        assert "- Could not find package 'ghost': not found" in text

    def test_empty_sections_omitted(self, knowledge):
        resolution = ResolutionResult(success=True, resolved_packages=[ResolvedPackage("flask", "3.0.0")])
        text = ReportCompiler(knowledge).render_narrative(_request("flask"), resolution)
        assert "## Conflicts" not in text
        assert "## Warnings" not in text
        assert "**Resolution Status:** Successful" in text


class TestCompile:
    """Tests for the assembled report."""

    def test_metadata_and_analysis(self, knowledge):
        registry = make_metadata(
            "requests",
            "2.31.0",
            requires_python=">=3.7",
            versions=[VersionInfo("2.31.0", yanked=True, yanked_reason="broken wheel")],
        )
        research = {
            "requests": PackageResearchResult(
                name="requests", registry=registry, deprecation_analysis=knowledge.analyze("requests")
            ),
            "ghost": ResearchFailure(name="ghost", error="not found"),
        }
        resolution = ResolutionResult(
            success=True,
            resolved_packages=[ResolvedPackage("requests", "2.31.0")],
            warnings=["Could not find package 'ghost': not found"],
        )
        request = _request("requests>=2.28", "ghost")

        report = ReportCompiler(knowledge).compile("job1", request, resolution, research, time.time() - 1)

        assert report.id == "job1"
        assert report.metadata.total_packages == 2
        assert report.metadata.deprecated_count == 0
        assert report.metadata.conflict_count == 0
        assert report.metadata.python_version == "3.11"
        assert report.metadata.processing_time_ms >= 1000
        by_name = {a.name: a for a in report.per_package_analysis}
        assert by_name["requests"].recommended_version == "2.31.0"
        assert by_name["requests"].security_notes == ["Version 2.31.0 has been yanked: broken wheel"]
        assert by_name["requests"].compatibility_notes == ["Requires Python >=3.7"]
        assert by_name["ghost"].recommended_version == "unresolved"
        assert by_name["ghost"].analysis == "Error: not found"

        data = report.to_dict()
        assert set(data) == {
            "id", "created_at", "original_request", "resolution_result",
            "manifest_text", "narrative_text", "per_package_analysis", "metadata",
        }
        assert data["original_request"]["python_version"] == "3.11"
