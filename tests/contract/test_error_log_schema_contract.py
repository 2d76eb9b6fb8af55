from __future__ import annotations

import json

import jsonschema
import pytest

from csv_reconcile.logging.error_log import ErrorLogBuffer
from csv_reconcile.models.error_record import RowErrorRecord
from csv_reconcile.services.runner import STRUCTURE_STATUS

"""Error log JSON Lines contract: fixed keys, one object per line."""

ERROR_LOG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["timestamp", "file", "row", "status", "message"],
    "properties": {
        "timestamp": {"type": "string", "pattern": r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$"},
        "file": {"type": "string"},
        "row": {"type": "integer", "minimum": -1},
        "status": {"type": "string"},
        "message": {"type": "string"},
    },
}


def test_error_log_schema_valid_example():
    record = {
        "timestamp": "2026-01-05T10:12:33Z",
        "file": "parts.tsv",
        "row": 4,
        "status": "ERROR_ON_CREATE",
        "message": "description can't be blank",
    }
    jsonschema.validate(record, ERROR_LOG_SCHEMA)


def test_error_log_schema_rejects_extra_key():
    record = {
        "timestamp": "2026-01-05T10:12:33Z",
        "file": "parts.tsv",
        "row": 4,
        "status": "ERROR_ON_CREATE",
        "message": "description can't be blank",
        "extra": "not allowed",
    }
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(record, ERROR_LOG_SCHEMA)


def test_flushed_lines_match_schema(tmp_path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(RowErrorRecord.create("parts.tsv", -1, STRUCTURE_STATUS, "Unknown column Colour"))
    buf.append(RowErrorRecord.create("parts.tsv", 3, "DUPLICATE", "Duplicate Part Number"))
    path = buf.flush()
    for line in path.read_text(encoding="utf-8").splitlines():
        jsonschema.validate(json.loads(line), ERROR_LOG_SCHEMA)
