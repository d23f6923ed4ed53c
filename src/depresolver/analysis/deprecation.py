"""Static deprecation knowledge for published packages and built-in modules.

The two lookup tables are loaded once from YAML into read-only mappings.
The bundled table ships in ``analysis/data/deprecations.yaml``; a deployment
may point at its own file instead.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from importlib import resources
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from depresolver.constants import Constants
from depresolver.models import DeprecationAnalysis, RegistryMetadata

logger = logging.getLogger(__name__)

_DEFAULT_TABLE = "deprecations.yaml"


@dataclass(frozen=True)
class DeprecationEntry:
    """One row of a deprecation table."""

    name: str
    deprecated: bool
    reason: str
    alternatives: Tuple[str, ...] = field(default_factory=tuple)
    confidence: float = 1.0
    last_release: Optional[str] = None
    warning: Optional[str] = None

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> "DeprecationEntry":
        confidence = float(data.get("confidence", 1.0))
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence for '{name}' must be within [0, 1], got {confidence}")
        return cls(
            name=name,
            deprecated=bool(data.get("deprecated", True)),
            reason=str(data.get("reason", "")),
            alternatives=tuple(str(a) for a in data.get("alternatives") or ()),
            confidence=confidence,
            last_release=data.get("last_release"),
            warning=data.get("warning"),
        )


class DeprecationKnowledge:
    """Read-only lookup over the published-package and built-in tables."""

    def __init__(
        self,
        packages: Mapping[str, DeprecationEntry],
        builtins: Mapping[str, DeprecationEntry],
        version: Any = None,
    ):
        self._packages = MappingProxyType({k.lower(): v for k, v in packages.items()})
        self._builtins = MappingProxyType({k.lower(): v for k, v in builtins.items()})
        self.version = version

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DeprecationKnowledge":
        """Build from a parsed YAML/JSON document."""
        if not isinstance(data, Mapping):
            raise ValueError("Deprecation table must be a mapping")
        packages = {
            str(name): DeprecationEntry.from_mapping(str(name), entry)
            for name, entry in (data.get("packages") or {}).items()
        }
        builtins = {
            str(name): DeprecationEntry.from_mapping(str(name), entry)
            for name, entry in (data.get("builtins") or {}).items()
        }
        return cls(packages, builtins, version=data.get("version"))

    @classmethod
    def from_file(cls, path: str) -> "DeprecationKnowledge":
        """Load a table from a YAML file on disk."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        knowledge = cls.from_mapping(data or {})
        logger.info(
            "Loaded deprecation table %s (version %s, %d packages, %d built-ins)",
            path, knowledge.version, len(knowledge._packages), len(knowledge._builtins),
        )
        return knowledge

    def is_builtin(self, name: str) -> bool:
        return name.strip().lower() in self._builtins

    def builtin_entry(self, name: str) -> Optional[DeprecationEntry]:
        return self._builtins.get(name.strip().lower())

    def package_entry(self, name: str) -> Optional[DeprecationEntry]:
        return self._packages.get(name.strip().lower())

    def builtin_metadata(self, name: str) -> RegistryMetadata:
        """Registry-shaped facts for a built-in module (no registry call)."""
        return RegistryMetadata(
            name=name.strip(),
            latest_version=Constants.BUILTIN_VERSION,
            summary="Python standard library module",
            author="Python Software Foundation",
            license="PSF",
            source=Constants.BUILTIN_VERSION,
        )

    def analyze(self, name: str) -> DeprecationAnalysis:
        """Deprecation verdict for ``name``.

        Built-in table first, then the published-package table; anything in
        neither is presumed current with confidence 0.
        """
        entry = self.builtin_entry(name)
        if entry is not None:
            return DeprecationAnalysis(
                is_deprecated=entry.deprecated,
                confidence=entry.confidence,
                evidence=["Deprecated built-in module in database"],
                alternatives=list(entry.alternatives),
                reason=entry.reason,
                warning=entry.warning,
                analysis_type="database_lookup",
            )
        entry = self.package_entry(name)
        if entry is not None:
            kind = "deprecated" if entry.deprecated else "problematic"
            return DeprecationAnalysis(
                is_deprecated=entry.deprecated,
                confidence=entry.confidence,
                evidence=[f"Known {kind} package in database"],
                alternatives=list(entry.alternatives),
                reason=entry.reason,
                warning=entry.warning,
                analysis_type="database_lookup",
            )
        return DeprecationAnalysis.not_deprecated()

    def stats(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "packages": len(self._packages),
            "builtins": len(self._builtins),
        }


@functools.lru_cache(maxsize=1)
def load_default_knowledge() -> DeprecationKnowledge:
    """Load the bundled deprecation table (once per process)."""
    table = resources.files("depresolver.analysis").joinpath("data").joinpath(_DEFAULT_TABLE)
    text = table.read_text(encoding="utf-8")
    return DeprecationKnowledge.from_mapping(yaml.safe_load(text) or {})
