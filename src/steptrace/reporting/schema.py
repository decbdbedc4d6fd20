"""JSON schema definition for persisted per-test result files."""
from __future__ import annotations

from typing import Any, Mapping

from jsonschema import Draft7Validator

SCHEMA_VERSION = "1.0.0"

_EVIDENCE = {
    "type": "object",
    "required": ["data", "filename", "contentType"],
    "properties": {
        "data": {"type": "string"},
        "filename": {"type": "string", "minLength": 1},
        "contentType": {
            "type": "string",
            "enum": ["text/plain", "application/json", "image/png", "application/octet-stream"],
        },
    },
}

RESULT_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "steptrace test result",
    "type": "object",
    "required": ["testKey", "start", "finish", "status", "comment", "steps"],
    "properties": {
        "testKey": {"type": "string", "pattern": "^[A-Z]+-[0-9]+$"},
        "start": {"type": "string", "format": "date-time"},
        "finish": {"type": "string", "format": "date-time"},
        "status": {"type": "string", "enum": ["PASSED", "FAILED"]},
        "comment": {"type": "string"},
        "specFile": {"type": "string"},
        "targetExecutionKey": {"type": "string"},
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["status", "actualResult", "evidences"],
                "properties": {
                    "status": {"type": "string", "enum": ["PASSED", "FAILED", "TODO"]},
                    "actualResult": {"type": "string"},
                    "evidences": {"type": "array", "items": _EVIDENCE},
                },
            },
        },
    },
}

_validator = Draft7Validator(RESULT_SCHEMA_V1)


def result_errors(document: Mapping[str, Any]) -> list[str]:
    """Human-readable schema violations of a result document (empty when valid)."""

    errors = sorted(_validator.iter_errors(document), key=lambda e: list(e.path))
    return [f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors]
