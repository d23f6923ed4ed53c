"""Resolution engine: one version per requirement name, plus conflicts.

This is not a package-manager resolver. It does not walk transitive
dependencies, does not backtrack, and only recognises one kind of conflict:
the same name requested more than once.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence

from depresolver.analysis.deprecation import DeprecationKnowledge
from depresolver.constants import Constants, Operators
from depresolver.models import (
    Conflict,
    DeprecatedPackageEntry,
    DeprecationAnalysis,
    RegistryMetadata,
    Requirement,
    ResearchFailure,
    ResearchOutcome,
    ResolutionResult,
    ResolvedPackage,
)

logger = logging.getLogger(__name__)

DUPLICATE_REASON = "Multiple requirements for the same package found"
DUPLICATE_RESOLUTION = "Review and consolidate duplicate package requirements"


def assign_version(req: Requirement, metadata: RegistryMetadata) -> str:
    """Pick a version for ``req`` given the registry's metadata.

    ``==`` takes the requested version verbatim, without checking that it
    exists. ``>=`` and ``>`` take the latest release without checking the
    lower bound. Every other operator takes the latest release.
    """
    latest = metadata.latest_version
    if (req.operator == Operators.EXACT or req.fixed) and req.version:
        return req.version
    if req.operator in (Operators.GTE, Operators.GT):
        return latest or req.version or Constants.UNKNOWN_VERSION
    return latest or Constants.UNKNOWN_VERSION


def _deprecated_entry(
    name: str, version: str, analysis: DeprecationAnalysis
) -> Optional[DeprecatedPackageEntry]:
    if not analysis.is_deprecated:
        return None
    reason = analysis.reason or "; ".join(analysis.evidence) or "Package is deprecated"
    return DeprecatedPackageEntry(
        name=name,
        version=version,
        reason=reason,
        suggested_alternative=analysis.alternatives[0] if analysis.alternatives else None,
    )


class ResolutionEngine:
    """Assigns versions to requirements using research results."""

    def __init__(self, knowledge: DeprecationKnowledge):
        self._knowledge = knowledge

    def resolve(
        self,
        requirements: Sequence[Requirement],
        research_results: Mapping[str, ResearchOutcome],
    ) -> ResolutionResult:
        """Resolve ``requirements`` in input order.

        Args:
            requirements: Requirements as submitted.
            research_results: Research outcomes keyed by case-folded name.
        """
        warnings: List[str] = []
        # key -> [(requirement, resolved, deprecated entry or None), ...]
        assigned: Dict[str, list] = OrderedDict()

        for req in requirements:
            if self._knowledge.is_builtin(req.name):
                version = Constants.BUILTIN_VERSION
                analysis = self._knowledge.analyze(req.name)
            else:
                research = research_results.get(req.key)
                if research is None or isinstance(research, ResearchFailure):
                    detail = research.error if research is not None else "no research result"
                    warnings.append(f"Could not find package '{req.name}': {detail}")
                    continue
                version = assign_version(req, research.registry)
                analysis = research.deprecation_analysis

            resolved = ResolvedPackage(name=req.name, version=version)
            assigned.setdefault(req.key, []).append(
                (req, resolved, _deprecated_entry(req.name, version, analysis))
            )

        resolved_packages: List[ResolvedPackage] = []
        deprecated_packages: List[DeprecatedPackageEntry] = []
        conflicts: List[Conflict] = []
        for entries in assigned.values():
            first_req, first_resolved, first_deprecated = entries[0]
            resolved_packages.append(first_resolved)
            if first_deprecated is not None:
                deprecated_packages.append(first_deprecated)
            if len(entries) > 1:
                specs = ", ".join(req.original_spec for req, _, _ in entries)
                conflicts.append(
                    Conflict(
                        packages=[first_req.name],
                        reason=f"{DUPLICATE_REASON}: {specs}",
                        suggested_resolution=DUPLICATE_RESOLUTION,
                    )
                )

        has_useful_results = bool(resolved_packages or deprecated_packages)
        success = not conflicts and has_useful_results
        error = None
        if conflicts:
            error = f"Found {len(conflicts)} conflicts"
        elif not has_useful_results:
            error = "No packages could be resolved"

        logger.info(
            "Dependency resolution completed: success=%s resolved=%d deprecated=%d conflicts=%d warnings=%d",
            success, len(resolved_packages), len(deprecated_packages), len(conflicts), len(warnings),
        )
        return ResolutionResult(
            success=success,
            resolved_packages=resolved_packages,
            deprecated_packages=deprecated_packages,
            conflicts=conflicts,
            warnings=warnings,
            error=error,
        )
