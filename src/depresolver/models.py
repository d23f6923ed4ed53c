"""Data models for requirements, research, resolution, reports and jobs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from depresolver.constants import Constants, JobStatus, Operators
from depresolver.errors import InvalidTransitionError, ValidationError


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Requirement:
    """One named-package version constraint as submitted by the caller.

    ``name`` keeps the caller's casing for display; ``key`` is the
    case-folded identity used for research, caching and conflict detection.
    """

    name: str
    operator: str = Operators.NONE
    version: Optional[str] = None
    fixed: bool = False
    original_spec: str = ""
    extras: List[str] = field(default_factory=list)
    marker: Optional[str] = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Requirement name must not be empty")
        if self.operator not in Operators.ALL:
            raise ValidationError(f"Unsupported operator '{self.operator}' for '{self.name}'")
        if self.operator and not self.version:
            raise ValidationError(f"Operator '{self.operator}' for '{self.name}' requires a version")
        self.fixed = self.operator == Operators.EXACT
        if not self.original_spec:
            self.original_spec = f"{self.name}{self.operator}{self.version or ''}"

    @property
    def key(self) -> str:
        return self.name.lower()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Requirement":
        return cls(
            name=data["name"],
            operator=data.get("operator") or Operators.NONE,
            version=data.get("version") or None,
            original_spec=data.get("original_spec") or "",
            extras=list(data.get("extras") or []),
            marker=data.get("marker") or None,
        )


@dataclass
class ResolutionRequest:
    """A submission: the requirement list plus resolution options."""

    requirements: List[Requirement]
    python_version: str = Constants.DEFAULT_PYTHON_VERSION
    allow_prereleases: bool = False
    prefer_stable: bool = True
    exclude_deprecated: bool = True
    suggest_alternatives: bool = True

    @property
    def package_names(self) -> List[str]:
        """Distinct requirement names in first-seen order, original casing."""
        seen = set()
        names = []
        for req in self.requirements:
            if req.key not in seen:
                seen.add(req.key)
                names.append(req.name)
        return names

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requirements": [r.to_dict() for r in self.requirements],
            "python_version": self.python_version,
            "allow_prereleases": self.allow_prereleases,
            "prefer_stable": self.prefer_stable,
            "exclude_deprecated": self.exclude_deprecated,
            "suggest_alternatives": self.suggest_alternatives,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolutionRequest":
        return cls(
            requirements=[Requirement.from_dict(r) for r in data.get("requirements", [])],
            python_version=data.get("python_version") or Constants.DEFAULT_PYTHON_VERSION,
            allow_prereleases=bool(data.get("allow_prereleases", False)),
            prefer_stable=bool(data.get("prefer_stable", True)),
            exclude_deprecated=bool(data.get("exclude_deprecated", True)),
            suggest_alternatives=bool(data.get("suggest_alternatives", True)),
        )


@dataclass
class VersionInfo:
    """One published release of a package."""

    version: str
    upload_time: Optional[str] = None
    yanked: bool = False
    yanked_reason: Optional[str] = None


@dataclass
class RegistryMetadata:
    """Registry facts about a package, or about a built-in module."""

    name: str
    latest_version: str
    summary: str = ""
    description: str = ""
    author: str = "Unknown"
    license: str = "Not specified"
    home_page: Optional[str] = None
    requires_python: Optional[str] = None
    package_url: Optional[str] = None
    maintainer: str = "Unknown"
    keywords: str = ""
    classifiers: List[str] = field(default_factory=list)
    release_count: int = 0
    versions: List[VersionInfo] = field(default_factory=list)
    last_updated: Optional[str] = None
    source: str = Constants.PRIMARY_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryMetadata":
        payload = dict(data)
        payload["versions"] = [VersionInfo(**v) for v in payload.get("versions", [])]
        return cls(**payload)


@dataclass
class DeprecationAnalysis:
    """Static/heuristic deprecation verdict for one package or module."""

    is_deprecated: bool
    confidence: float
    evidence: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    reason: str = ""
    warning: Optional[str] = None
    analysis_type: str = "quick_check"

    @classmethod
    def not_deprecated(cls) -> "DeprecationAnalysis":
        return cls(
            is_deprecated=False,
            confidence=0.0,
            reason="Package not in known deprecated packages list",
        )


@dataclass
class SearchHit:
    title: str
    url: str
    snippet: str


@dataclass
class SearchOutcome:
    """Web search results, or the reason the search could not run."""

    results: List[SearchHit] = field(default_factory=list)
    total_results: int = 0
    error: Optional[str] = None


@dataclass
class PackageResearchResult:
    """Successful research for one package. Never mutated after creation."""

    name: str
    registry: RegistryMetadata
    deprecation_analysis: DeprecationAnalysis
    deprecation_search: Optional[SearchOutcome] = None
    alternatives_search: Optional[SearchOutcome] = None
    from_cache: bool = False

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ResearchFailure:
    """Isolated research failure for one package."""

    name: str
    error: str

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "error": self.error}


ResearchOutcome = Union[PackageResearchResult, ResearchFailure]


@dataclass
class ResolvedPackage:
    name: str
    version: str


@dataclass
class DeprecatedPackageEntry:
    name: str
    version: str
    reason: str
    suggested_alternative: Optional[str] = None


@dataclass
class Conflict:
    """Inability to satisfy every requirement for one package name."""

    packages: List[str]
    reason: str
    suggested_resolution: Optional[str] = None


@dataclass
class ResolutionResult:
    """Outcome of the resolution phase.

    ``success`` holds iff there are no conflicts and at least one package was
    resolved or flagged as deprecated.
    """

    success: bool
    resolved_packages: List[ResolvedPackage] = field(default_factory=list)
    deprecated_packages: List[DeprecatedPackageEntry] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PackageAnalysis:
    name: str
    current_version: str
    recommended_version: str
    analysis: str
    security_notes: List[str] = field(default_factory=list)
    compatibility_notes: List[str] = field(default_factory=list)


@dataclass
class ReportMetadata:
    python_version: str
    total_packages: int
    deprecated_count: int
    conflict_count: int
    processing_time_ms: int


@dataclass
class Report:
    """Final structured report. Field names are a public interface."""

    id: str
    created_at: str
    original_request: ResolutionRequest
    resolution_result: ResolutionResult
    manifest_text: str
    narrative_text: str
    per_package_analysis: List[PackageAnalysis]
    metadata: ReportMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "original_request": self.original_request.to_dict(),
            "resolution_result": self.resolution_result.to_dict(),
            "manifest_text": self.manifest_text,
            "narrative_text": self.narrative_text,
            "per_package_analysis": [asdict(a) for a in self.per_package_analysis],
            "metadata": asdict(self.metadata),
        }


@dataclass
class JobRecord:
    """Durable state of one job.

    processing -> completed | failed; terminal states never change.
    """

    id: str
    status: JobStatus
    created_at: str
    original_request: Dict[str, Any]
    report: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def admit(cls, job_id: str, request: ResolutionRequest) -> "JobRecord":
        return cls(
            id=job_id,
            status=JobStatus.PROCESSING,
            created_at=utc_now_iso(),
            original_request=request.to_dict(),
        )

    def _ensure_open(self, target: JobStatus) -> None:
        if self.status.is_terminal:
            raise InvalidTransitionError(
                f"Job {self.id} is {self.status.value}; cannot move to {target.value}"
            )

    def complete(self, report: Dict[str, Any]) -> None:
        self._ensure_open(JobStatus.COMPLETED)
        self.status = JobStatus.COMPLETED
        self.report = report

    def fail(self, error: str) -> None:
        self._ensure_open(JobStatus.FAILED)
        self.status = JobStatus.FAILED
        self.error = error or "Unknown error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "created_at": self.created_at,
            "original_request": self.original_request,
            "report": self.report,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobRecord":
        return cls(
            id=data["id"],
            status=JobStatus(data["status"]),
            created_at=data.get("created_at", ""),
            original_request=data.get("original_request") or {},
            report=data.get("report"),
            error=data.get("error"),
        )
