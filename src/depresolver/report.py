"""Report compilation: manifest text, narrative document, per-package analysis."""

from __future__ import annotations

import logging
import time
from typing import List, Mapping

from depresolver.analysis.deprecation import DeprecationKnowledge
from depresolver.constants import Constants, Operators
from depresolver.models import (
    PackageAnalysis,
    PackageResearchResult,
    ResearchOutcome,
    Report,
    ReportMetadata,
    ResolutionRequest,
    ResolutionResult,
    utc_now_iso,
)
from depresolver.research import describe_research

logger = logging.getLogger(__name__)


class ReportCompiler:
    """Turns a resolution result and research results into a Report."""

    def __init__(self, knowledge: DeprecationKnowledge):
        self._knowledge = knowledge

    def _source(self, name: str) -> str:
        if self._knowledge.is_builtin(name):
            return Constants.BUILTIN_VERSION
        return Constants.PRIMARY_SOURCE

    def render_manifest(self, resolution: ResolutionResult, include_comments: bool = True) -> str:
        """Pinned requirements file, sorted alphabetically by package name.

        Lines whose source is not the primary registry carry a trailing
        provenance comment.
        """
        packages = sorted(resolution.resolved_packages, key=lambda p: (p.name.lower(), p.name))
        lines: List[str] = []
        if include_comments:
            lines.extend([
                "# Python Requirements File",
                f"# Generated on: {utc_now_iso()}",
                f"# Total packages: {len(packages)}",
                "#",
                "# Install with: pip install -r requirements.txt",
                "#",
                "",
            ])
        for pkg in packages:
            line = f"{pkg.name}{Operators.EXACT}{pkg.version}"
            source = self._source(pkg.name)
            if include_comments and source != Constants.PRIMARY_SOURCE:
                line += f"  # {source}"
            lines.append(line)
        if include_comments and packages:
            lines.extend(["", "# End of requirements"])
        return "\n".join(lines) + "\n"

    def render_narrative(self, request: ResolutionRequest, resolution: ResolutionResult) -> str:
        """Markdown narrative with a fixed section order."""
        out = [
            "# Python Dependency Resolution Report",
            "",
            f"**Generated:** {utc_now_iso()}",
            f"**Python Version:** {request.python_version}",
            f"**Total Packages:** {len(request.requirements)}",
            "",
            "## Summary",
            "",
            f"**Resolution Status:** {'Successful' if resolution.success else 'Failed'}",
            f"**Conflicts:** {len(resolution.conflicts)}",
            f"**Deprecated Packages:** {len(resolution.deprecated_packages)}",
        ]

        if resolution.resolved_packages:
            out.extend(["", "## Resolved Packages", ""])
            out.extend(f"- **{pkg.name}** = {pkg.version}" for pkg in resolution.resolved_packages)

        if resolution.deprecated_packages:
            out.extend(["", "## Deprecated Packages", ""])
            for pkg in resolution.deprecated_packages:
                out.append(f"### {pkg.name}")
                out.append(f"- **Version:** {pkg.version}")
                out.append(f"- **Reason:** {pkg.reason}")
                if pkg.suggested_alternative:
                    out.append(f"- **Suggested Alternative:** {pkg.suggested_alternative}")
                out.append("")

        if resolution.conflicts:
            out.extend(["", "## Conflicts", ""])
            for conflict in resolution.conflicts:
                out.append(f"### {', '.join(conflict.packages)}")
                out.append(f"**Reason:** {conflict.reason}")
                if conflict.suggested_resolution:
                    out.append(f"**Suggested Resolution:** {conflict.suggested_resolution}")
                out.append("")

        if resolution.warnings:
            out.extend(["", "## Warnings", ""])
            out.extend(f"- {warning}" for warning in resolution.warnings)

        return "\n".join(out).rstrip("\n") + "\n"

    def analyze_packages(
        self,
        resolution: ResolutionResult,
        research_results: Mapping[str, ResearchOutcome],
    ) -> List[PackageAnalysis]:
        """One analysis record per researched package."""
        resolved = {pkg.name.lower(): pkg.version for pkg in resolution.resolved_packages}
        analyses = []
        for key, outcome in research_results.items():
            recommended = resolved.get(key, Constants.UNRESOLVED_VERSION)
            current = Constants.UNKNOWN_VERSION
            security_notes: List[str] = []
            compatibility_notes: List[str] = []
            if isinstance(outcome, PackageResearchResult):
                registry = outcome.registry
                current = registry.latest_version or Constants.UNKNOWN_VERSION
                if registry.requires_python:
                    compatibility_notes.append(f"Requires Python {registry.requires_python}")
                for info in registry.versions:
                    if info.version == recommended and info.yanked:
                        reason = f": {info.yanked_reason}" if info.yanked_reason else ""
                        security_notes.append(f"Version {recommended} has been yanked{reason}")
                if outcome.deprecation_analysis.warning:
                    compatibility_notes.append(outcome.deprecation_analysis.warning)
            analyses.append(
                PackageAnalysis(
                    name=outcome.name,
                    current_version=current,
                    recommended_version=recommended,
                    analysis=describe_research(outcome),
                    security_notes=security_notes,
                    compatibility_notes=compatibility_notes,
                )
            )
        return analyses

    def compile(
        self,
        job_id: str,
        request: ResolutionRequest,
        resolution: ResolutionResult,
        research_results: Mapping[str, ResearchOutcome],
        start_time: float,
    ) -> Report:
        """Build the final report.

        Args:
            start_time: ``time.time()`` at submission; processing time spans
                every phase up to now.
        """
        report = Report(
            id=job_id,
            created_at=utc_now_iso(),
            original_request=request,
            resolution_result=resolution,
            manifest_text=self.render_manifest(resolution),
            narrative_text=self.render_narrative(request, resolution),
            per_package_analysis=self.analyze_packages(resolution, research_results),
            metadata=ReportMetadata(
                python_version=request.python_version,
                total_packages=len(request.requirements),
                deprecated_count=len(resolution.deprecated_packages),
                conflict_count=len(resolution.conflicts),
                processing_time_ms=max(0, int((time.time() - start_time) * 1000)),
            ),
        )
        logger.info(
            "Report generated for %s: %d packages, %d deprecated, %d conflicts, %d ms",
            job_id,
            report.metadata.total_packages,
            report.metadata.deprecated_count,
            report.metadata.conflict_count,
            report.metadata.processing_time_ms,
        )
        return report
