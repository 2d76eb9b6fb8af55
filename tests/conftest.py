# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from csv_reconcile.logging.init import LOGGER_NAME, reset_logging


class FakeHandle:
    """Persistence handle double recording every call."""

    def __init__(
        self,
        *,
        new: bool = False,
        changed: bool = False,
        deleting: bool = False,
        valid: bool = True,
        editable: bool | None = None,
        save_result: bool = True,
        errors: Any = None,
    ) -> None:
        self.new = new
        self.changed = changed
        self.deleting = deleting
        self.valid = valid
        self.save_result = save_result
        self._errors = [] if errors is None else errors
        self.assigned: list[dict[str, Any]] = []
        self.save_calls = 0
        self.destroy_calls = 0
        if editable is not None:
            self.is_editable = lambda: editable

    def assign_attributes(self, attributes: Mapping[str, Any]) -> None:
        self.assigned.append(dict(attributes))

    def is_valid(self) -> bool:
        return self.valid

    def errors(self) -> Any:
        return self._errors

    def is_changed(self) -> bool:
        return self.changed

    def is_marked_for_deletion(self) -> bool:
        return self.deleting

    def is_new_record(self) -> bool:
        return self.new

    def save(self) -> bool:
        self.save_calls += 1
        return self.save_result

    def destroy(self) -> None:
        self.destroy_calls += 1


class FakeFinder:
    """Finder returning one prepared handle for every row."""

    def __init__(self, handle: Any = None, new_handle: Any = None) -> None:
        self.handle = handle
        self.new_handle = new_handle
        self.find_calls: list[dict[str, Any]] = []
        self.new_calls: list[dict[str, Any]] = []

    def find_row_model(self, key_attributes: Mapping[str, Any]) -> Any:
        self.find_calls.append(dict(key_attributes))
        return self.handle

    def new_row_model(self, key_attributes: Mapping[str, Any]) -> Any:
        self.new_calls.append(dict(key_attributes))
        return self.new_handle


class MemoryRecord:
    """Persistence handle over a dict-based store."""

    def __init__(self, store: MemoryStore, key: tuple[Any, ...], attributes: dict[str, Any] | None) -> None:
        self.store = store
        self.key = key
        self.new = attributes is None
        self.original = dict(attributes or {})
        self.attributes = dict(attributes or {})
        self.deleting = False

    def assign_attributes(self, attributes: Mapping[str, Any]) -> None:
        for name, value in attributes.items():
            if name == "delete":
                self.deleting = value == "yes"
            else:
                self.attributes[name] = value

    def is_valid(self) -> bool:
        return not self.errors()

    def errors(self) -> list[str]:
        return [f"{name} can't be blank" for name in self.store.required if not self.attributes.get(name)]

    def is_changed(self) -> bool:
        return self.attributes != self.original

    def is_marked_for_deletion(self) -> bool:
        return self.deleting

    def is_new_record(self) -> bool:
        return self.new

    def save(self) -> bool:
        self.store.saves += 1
        self.store.records[self.key] = dict(self.attributes)
        return True

    def destroy(self) -> None:
        self.store.records.pop(self.key, None)


class MemoryStore:
    """Model finder keeping records in memory, keyed by key attribute values."""

    def __init__(self, records: dict[tuple[Any, ...], dict[str, Any]] | None = None, required: tuple[str, ...] = ()) -> None:
        self.records = records or {}
        self.required = required
        self.saves = 0

    def find_row_model(self, key_attributes: Mapping[str, Any]) -> MemoryRecord | None:
        key = tuple(key_attributes.values())
        if key not in self.records:
            return None
        return MemoryRecord(self, key, self.records[key])

    def new_row_model(self, key_attributes: Mapping[str, Any]) -> MemoryRecord:
        return MemoryRecord(self, tuple(key_attributes.values()), None)


@pytest.fixture()
def fake_handle_cls() -> type[FakeHandle]:
    return FakeHandle


@pytest.fixture()
def fake_finder_cls() -> type[FakeFinder]:
    return FakeFinder


@pytest.fixture()
def memory_store_cls() -> type[MemoryStore]:
    return MemoryStore


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """columns:
  required: [Part Number]
  legal: [Part Number, Description, Delete]
  primary_key: [Part Number]
detect_duplicate_rows: true
table:
  name: parts
  delete_column: delete
  required_attributes: [part_number]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging()
    yield
    reset_logging()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
