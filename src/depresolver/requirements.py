"""Requirement parsing and submission payload handling."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from packaging.requirements import InvalidRequirement
from packaging.requirements import Requirement as PackagingRequirement
from packaging.specifiers import Specifier

from depresolver.constants import Constants, Operators
from depresolver.errors import ValidationError
from depresolver.models import Requirement, ResolutionRequest
from depresolver.schemas import RESOLVE_INPUT
from depresolver.validate import validate_input

# pip's requirements-file rules: comments start at a '#' preceded by
# whitespace, and per-requirement options (--hash, ...) follow the spec.
_COMMENT_RE = re.compile(r"(^|\s+)#.*$")
_OPTION_RE = re.compile(r"\s+--[A-Za-z]")


def _first_specifier(parsed: PackagingRequirement, text: str) -> Tuple[str, Optional[str]]:
    """Operator and version of the comparison written first in ``text``.

    ``SpecifierSet`` does not keep input order, so the position of each
    specifier in the source string decides.
    """
    specifiers: List[Specifier] = list(parsed.specifier)
    if not specifiers:
        return Operators.NONE, None
    compact = "".join(text.split(";", 1)[0].split())

    def position(spec: Specifier) -> int:
        index = compact.find(str(spec))
        return index if index >= 0 else len(compact)

    first = min(specifiers, key=position)
    return first.operator, first.version


def parse_requirement_string(requirement: str) -> Requirement:
    """Parse a PEP 508 string like ``numpy>=1.19.0,<2.0.0`` or ``django==3.2.5``.

    Only the first comparison is kept. Extras and the environment marker are
    carried separately. The stripped input becomes ``original_spec``.

    Raises:
        ValidationError: if the string is not a valid requirement.
    """
    spec = (requirement or "").strip()
    if not spec:
        raise ValidationError(f"Invalid requirement format: {requirement}")
    try:
        parsed = PackagingRequirement(spec)
    except InvalidRequirement as exc:
        raise ValidationError(f"Invalid requirement format: {requirement} ({exc})") from exc

    operator, version = _first_specifier(parsed, spec)
    return Requirement(
        name=parsed.name,
        operator=operator,
        version=version,
        original_spec=spec,
        extras=sorted(parsed.extras),
        marker=str(parsed.marker) if parsed.marker else None,
    )


def _requirement_lines(text: str) -> Iterator[str]:
    """Logical requirement lines: continuations joined, comments and options removed."""
    pending = ""
    for raw_line in (text or "").splitlines():
        line = pending + raw_line
        if line.endswith("\\"):
            pending = line[:-1] + " "
            continue
        pending = ""
        yield line
    if pending:
        yield pending


def parse_requirements_text(text: str) -> List[Requirement]:
    """Parse the body of a requirements file.

    Blank lines, comments and pip option lines (``-r``, ``-e``, ``--index-url``)
    are ignored. Inline comments and per-requirement options such as
    ``--hash`` are stripped. Included files are never followed.
    """
    requirements = []
    for line in _requirement_lines(text):
        line = _COMMENT_RE.sub("", line).strip()
        if not line or line.startswith("-"):
            continue
        line = _OPTION_RE.split(line, 1)[0]
        requirements.append(parse_requirement_string(line))
    return requirements


def _coerce_requirement(item: Any) -> Requirement:
    if isinstance(item, str):
        return parse_requirement_string(item)
    return Requirement.from_dict(item)


def build_request(payload: Optional[Dict[str, Any]]) -> ResolutionRequest:
    """Validate a submission payload and build a ResolutionRequest.

    Raises:
        ValidationError: if the payload is malformed or has no requirements.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    validate_input(RESOLVE_INPUT, payload)

    requirements = [_coerce_requirement(item) for item in payload.get("requirements") or []]
    if payload.get("requirements_txt"):
        requirements.extend(parse_requirements_text(payload["requirements_txt"]))
    if not requirements:
        raise ValidationError("At least one requirement is required")

    return ResolutionRequest(
        requirements=requirements,
        python_version=payload.get("python_version") or Constants.DEFAULT_PYTHON_VERSION,
        allow_prereleases=payload.get("allow_prereleases", False),
        prefer_stable=payload.get("prefer_stable", True),
        exclude_deprecated=payload.get("exclude_deprecated", True),
        suggest_alternatives=payload.get("suggest_alternatives", True),
    )
