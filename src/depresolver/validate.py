"""JSON Schema validation helpers for request payloads."""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

from depresolver.errors import ValidationError


def validate_input(schema: Dict[str, Any], data: Any) -> None:
    """Validate a payload strictly and raise on the first error.

    Args:
        schema: Draft-07 JSON Schema dict.
        data:   Payload to validate.

    Raises:
        ValidationError: naming the offending path and the schema message.
    """
    validator = Draft7Validator(schema)
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise ValidationError(f"Invalid input at '{path}': {first.message}")
