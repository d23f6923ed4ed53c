"""JSON Schemas (Draft-07) for the HTTP request payloads."""

from depresolver.constants import Operators

REQUIREMENT_OBJECT = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "operator": {"type": "string", "enum": Operators.ALL},
        "version": {"type": ["string", "null"]},
        "fixed": {"type": "boolean"},
        "original_spec": {"type": "string"},
        "extras": {"type": "array", "items": {"type": "string"}},
        "marker": {"type": ["string", "null"]},
    },
}

RESOLVE_INPUT = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "requirements": {
            "type": "array",
            "items": {
                "oneOf": [
                    {"type": "string", "minLength": 1},
                    REQUIREMENT_OBJECT,
                ]
            },
        },
        "requirements_txt": {"type": "string"},
        "python_version": {"type": "string", "minLength": 1},
        "allow_prereleases": {"type": "boolean"},
        "prefer_stable": {"type": "boolean"},
        "exclude_deprecated": {"type": "boolean"},
        "suggest_alternatives": {"type": "boolean"},
    },
    "anyOf": [
        {"required": ["requirements"]},
        {"required": ["requirements_txt"]},
    ],
}

RESEARCH_INPUT = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "package_name": {"type": "string", "minLength": 1},
        "package_names": {
            "type": "array",
            "minItems": 1,
            "items": {"type": "string", "minLength": 1},
        },
    },
    "anyOf": [
        {"required": ["package_name"]},
        {"required": ["package_names"]},
    ],
}
