from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from typing import Any

from .contracts import RowModelFinder, RowModelMapper

"""Config dataclasses for the tabular import core.

``ImportOptions`` is the single configuration bundle read by the header
schema, the rows and the import session. ``TableConfig`` and
``DatabaseConfig`` are only used by the PostgreSQL-backed model finder and
the CLI.
"""

__all__ = [
    "DatabaseConfig",
    "ImportOptions",
    "TableConfig",
]


def _names(value: Sequence[str] | str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class ImportOptions:
    """Options recognized by HeaderSchema, RowRecord and ImportSession.

    ``primary_key`` / ``alternate_primary_key`` use ``None`` for "not set".
    An empty sequence means "explicitly set to nothing", which the header
    schema rejects. ``header_class`` / ``row_class`` of ``None`` mean the
    default ``HeaderSchema`` / ``RowRecord``. A custom header class is built as
    ``header_class(cells, options)`` and needs the ``HeaderSchema`` query
    methods; its ``validate_options`` classmethod is optional.
    """
    required_columns: tuple[str, ...] = ()
    legal_columns: tuple[str, ...] = ()  # empty = any column allowed
    primary_key: tuple[str, ...] | None = None
    alternate_primary_key: tuple[str, ...] | None = None
    detect_duplicate_rows: bool = True
    dry_run: bool = False
    header_class: type | None = None
    row_class: type | None = None
    row_model_finder: RowModelFinder | None = None
    row_model_mapper: RowModelMapper | None = None
    delimiter: str = "\t"

    def __post_init__(self) -> None:
        # Accept lists / single names from callers, store tuples
        object.__setattr__(self, "required_columns", _names(self.required_columns) or ())
        object.__setattr__(self, "legal_columns", _names(self.legal_columns) or ())
        object.__setattr__(self, "primary_key", _names(self.primary_key))
        object.__setattr__(self, "alternate_primary_key", _names(self.alternate_primary_key))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> ImportOptions:
        """Build options from a plain dict, ignoring unknown keys and ``None`` values."""
        if not mapping:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in mapping.items() if k in known and v is not None})

    def with_overrides(self, **changes: Any) -> ImportOptions:
        return replace(self, **changes)


@dataclass(frozen=True)
class TableConfig:
    """Target table for the PostgreSQL model finder."""
    name: str
    key_columns: tuple[str, ...] = ()  # empty = use the row's key attributes
    delete_column: str | None = None  # attribute that marks a row for deletion
    required_attributes: tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback used when environment variables are not set."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
