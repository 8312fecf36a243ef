"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "gzconform report",
    "type": "object",
    "required": ["schema_version", "generated_at", "summary", "cases"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "summary": {
            "type": "object",
            "required": ["total", "passed", "failed", "setup_failed", "aborted", "duration_s", "artifacts"],
            "properties": {
                "total": {"type": "integer"},
                "passed": {"type": "integer"},
                "failed": {"type": "integer"},
                "setup_failed": {"type": "integer"},
                "aborted": {"type": ["string", "null"]},
                "duration_s": {"type": "number"},
                "reference": {"type": "string"},
                "candidate": {"type": "string"},
                "artifacts": {"type": "array", "items": {"type": "string"}},
            },
        },
        "cases": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["label", "args", "policy", "status", "state", "duration_ms"],
                "properties": {
                    "label": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                    "policy": {"type": "string"},
                    "status": {"enum": ["passed", "failed", "setup-failed", "aborted"]},
                    "state": {"type": "string"},
                    "duration_ms": {"type": "number"},
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "exit_status": {
                        "type": "object",
                        "required": ["reference", "candidate"],
                        "properties": {
                            "reference": {"type": "integer"},
                            "candidate": {"type": "integer"},
                        },
                    },
                    "error": {"type": "string"},
                    "artifacts": {"type": "string"},
                    "mismatches": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["channel", "detail"],
                            "properties": {
                                "channel": {"type": "string"},
                                "detail": {"type": "string"},
                                "offset": {"type": ["integer", "null"]},
                            },
                        },
                    },
                },
            },
        },
    },
}
