from __future__ import annotations

import json
import re
from pathlib import Path

from csv_reconcile.logging.error_log import ErrorLogBuffer
from csv_reconcile.models.error_record import RowErrorRecord


def test_flush_without_records_writes_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(RowErrorRecord.create("parts.tsv", 3, "ERROR_ON_CREATE", "name can't be blank"))
    buf.extend([RowErrorRecord.create("parts.tsv", 4, "DUPLICATE", "Duplicate Part Number")])
    assert len(buf) == 2

    path = buf.flush()
    assert path is not None and path.exists()
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["row"] for line in lines] == [3, 4]
    assert json.loads(lines[1])["message"] == "Duplicate Part Number"
    assert len(buf) == 0


def test_flush_appends_to_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(RowErrorRecord.create("a.csv", 2, "ERROR_ON_READ", "first"))
    first = buf.flush()
    buf.append(RowErrorRecord.create("a.csv", 3, "ERROR_ON_READ", "second"))
    second = buf.flush()
    assert first == second
    assert len(first.read_text(encoding="utf-8").splitlines()) == 2


def test_records_is_a_copy(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(RowErrorRecord.create("a.csv", 2, "ERROR_ON_READ", "x"))
    buf.records.clear()
    assert len(buf.records) == 1
