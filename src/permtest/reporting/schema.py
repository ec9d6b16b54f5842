"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

_NUMBER_OR_NULL = {"type": ["number", "null"]}

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "permtest report",
    "type": "object",
    "required": ["schema_version", "generated_at", "summary", "cases"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "summary": {
            "type": "object",
            "required": ["total", "passed", "failed", "skipped", "errors", "backend", "seed"],
            "properties": {
                "total": {"type": "integer"},
                "passed": {"type": "integer"},
                "failed": {"type": "integer"},
                "skipped": {"type": "integer"},
                "errors": {"type": "integer"},
                "backend": {"type": "string"},
                "seed": {"type": "integer"},
            },
        },
        "cases": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "status", "dtypes", "shape", "permutation", "scale"],
                "properties": {
                    "id": {"type": "string"},
                    "status": {"enum": ["passed", "failed", "skipped", "error"]},
                    "dtypes": {"type": "array", "items": {"type": "string"}, "minItems": 2, "maxItems": 2},
                    "shape": {"type": "array", "items": {"type": "integer"}, "minItems": 4, "maxItems": 4},
                    "permutation": {
                        "type": "array",
                        "items": {"type": "integer", "minimum": 0, "maximum": 3},
                        "minItems": 4,
                        "maxItems": 4,
                    },
                    "scale": {"type": "number"},
                    "seed": {"type": ["integer", "null"]},
                    "error": {"type": "string"},
                    "skip_reason": {"type": "string"},
                    "verdict": {
                        "type": "object",
                        "required": ["passed", "max_relative_error"],
                        "properties": {
                            "passed": {"type": "boolean"},
                            "max_relative_error": _NUMBER_OR_NULL,
                            "mismatched": {"type": "integer"},
                            "total": {"type": "integer"},
                            "max_error_index": {"type": ["integer", "null"]},
                            "device_value": _NUMBER_OR_NULL,
                            "reference_value": _NUMBER_OR_NULL,
                        },
                    },
                },
            },
        },
    },
}
