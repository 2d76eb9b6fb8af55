from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import sql

from ..models.config_models import TableConfig

"""PostgreSQL table-backed model finder.

``TableModelFinder`` looks rows of an import up in a single table by their
key attributes and hands out ``TableRecord`` persistence handles. Every
statement runs inside its own SAVEPOINT so that a failing row rolls back
alone and the surrounding transaction stays usable for the next row.
Transaction boundaries (BEGIN / COMMIT) belong to the caller.

Cell values are compared and written as text; no type coercion happens
here, PostgreSQL casts text parameters on INSERT / UPDATE.
"""

__all__ = [
    "TableModelError",
    "TableModelFinder",
    "TableRecord",
]

logger = logging.getLogger(__name__)

SAVEPOINT = "csv_reconcile_row"
DELETE_MARKERS = {"1", "true", "yes", "y", "x", "delete"}


class TableModelError(Exception):
    pass


def _normalize(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return None if text.strip() == "" else text


def _is_delete_marker(value: Any) -> bool:
    text = _normalize(value)
    return text is not None and text.strip().lower() in DELETE_MARKERS


@contextmanager
def _savepoint(cursor: Any) -> Iterator[None]:
    cursor.execute(f"SAVEPOINT {SAVEPOINT}")
    try:
        yield
    except psycopg2.Error as e:
        cursor.execute(f"ROLLBACK TO SAVEPOINT {SAVEPOINT}")
        raise TableModelError(str(e).strip()) from e
    cursor.execute(f"RELEASE SAVEPOINT {SAVEPOINT}")


def _where(keys: Mapping[str, Any]) -> sql.Composed:
    return sql.SQL(" AND ").join(
        sql.SQL("{} = %s").format(sql.Identifier(k)) for k in keys
    )


class TableRecord:
    """Persistence handle for one table row (loaded or new)."""

    def __init__(
        self,
        cursor: Any,
        table: TableConfig,
        keys: Mapping[str, Any],
        loaded: Mapping[str, Any] | None = None,
    ) -> None:
        self.cursor = cursor
        self.table = table
        self.keys = dict(keys)
        self._new = loaded is None
        self._original: dict[str, Any] = dict(loaded or {})
        self._attributes: dict[str, Any] = dict(loaded) if loaded is not None else dict(keys)
        self._marked_for_deletion = False
        self._persist_errors: list[str] = []

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def assign_attributes(self, attributes: Mapping[str, Any]) -> None:
        for name, value in attributes.items():
            if self.table.delete_column and name == self.table.delete_column:
                self._marked_for_deletion = _is_delete_marker(value)
                continue
            self._attributes[name] = value

    def changed_attributes(self) -> dict[str, Any]:
        if self._new:
            return {k: v for k, v in self._attributes.items() if _normalize(v) is not None}
        return {
            k: v for k, v in self._attributes.items()
            if _normalize(v) != _normalize(self._original.get(k))
        }

    def is_changed(self) -> bool:
        return bool(self.changed_attributes())

    def is_marked_for_deletion(self) -> bool:
        return self._marked_for_deletion

    def is_new_record(self) -> bool:
        return self._new

    def errors(self) -> list[str]:
        messages = [
            f"{name} can't be blank"
            for name in self.table.required_attributes
            if _normalize(self._attributes.get(name)) is None
        ]
        return messages + self._persist_errors

    def is_valid(self) -> bool:
        return not self.errors()

    def save(self) -> bool:
        try:
            if self._new:
                self._insert()
            else:
                self._update()
        except TableModelError as e:
            logger.warning(f"{self.table.name}: save failed for {self.keys}: {e}")
            self._persist_errors.append(str(e))
            return False
        self._original = dict(self._attributes)
        self._new = False
        return True

    def destroy(self) -> bool:
        query = sql.SQL("DELETE FROM {} WHERE {}").format(
            sql.Identifier(self.table.name), _where(self.keys)
        )
        try:
            with _savepoint(self.cursor):
                self.cursor.execute(query, list(self.keys.values()))
        except TableModelError as e:
            logger.warning(f"{self.table.name}: delete failed for {self.keys}: {e}")
            self._persist_errors.append(str(e))
            return False
        return True

    def _insert(self) -> None:
        values = self.changed_attributes()
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            sql.Identifier(self.table.name),
            sql.SQL(", ").join(sql.Identifier(k) for k in values),
            sql.SQL(", ").join(sql.Placeholder() for _ in values),
        )
        with _savepoint(self.cursor):
            self.cursor.execute(query, list(values.values()))

    def _update(self) -> None:
        changes = self.changed_attributes()
        if not changes:
            return
        query = sql.SQL("UPDATE {} SET {} WHERE {}").format(
            sql.Identifier(self.table.name),
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(k)) for k in changes
            ),
            _where(self.keys),
        )
        with _savepoint(self.cursor):
            self.cursor.execute(query, list(changes.values()) + list(self.keys.values()))


class TableModelFinder:
    """Model finder over one PostgreSQL table."""

    def __init__(self, cursor: Any, table: TableConfig) -> None:
        self.cursor = cursor
        self.table = table
        self._failed_lookups: set[tuple[Any, ...]] = set()

    def _keys(self, key_attributes: Mapping[str, Any]) -> dict[str, Any]:
        if self.table.key_columns:
            return {c: key_attributes.get(c) for c in self.table.key_columns}
        return dict(key_attributes)

    def find_row_model(self, key_attributes: Mapping[str, Any]) -> TableRecord | None:
        keys = self._keys(key_attributes)
        if not keys or all(_normalize(v) is None for v in keys.values()):
            return None
        query = sql.SQL("SELECT * FROM {} WHERE {} LIMIT 1").format(
            sql.Identifier(self.table.name), _where(keys)
        )
        try:
            with _savepoint(self.cursor):
                self.cursor.execute(query, list(keys.values()))
                found = self.cursor.fetchone()
                columns = [d[0] for d in self.cursor.description or ()]
        except TableModelError as e:
            logger.warning(f"{self.table.name}: lookup failed for {keys}: {e}")
            self._failed_lookups.add(tuple(keys.items()))
            return None
        if found is None:
            return None
        return TableRecord(self.cursor, self.table, keys, loaded=dict(zip(columns, found)))

    def new_row_model(self, key_attributes: Mapping[str, Any]) -> TableRecord | None:
        keys = self._keys(key_attributes)
        # a record whose lookup failed may exist; never insert it blindly
        if tuple(keys.items()) in self._failed_lookups:
            return None
        return TableRecord(self.cursor, self.table, keys)
