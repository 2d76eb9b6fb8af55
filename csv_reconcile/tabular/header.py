from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from functools import cached_property
from typing import Any

from ..models.column import Column, column_key
from ..models.config_models import ImportOptions

"""Header row validation.

The first row of an import declares its columns. ``HeaderSchema`` checks
that row against the configured required / legal / primary key columns and
resolves which columns form the row identity key.

Two kinds of problems are kept apart:
- Invalid option combinations raise ``SchemaConfigError`` at construction.
  These are programming errors and nothing has been read yet.
- Problems with the header itself (duplicate, unknown, missing columns)
  are reported through ``errors()`` / ``is_valid()`` and never raise.
"""

__all__ = [
    "HeaderSchema",
    "SchemaConfigError",
]


class SchemaConfigError(ValueError):
    """Raised when the header schema options contradict each other."""


def _keys(names: Iterable[Any] | None) -> list[str]:
    return [k for k in (column_key(n) for n in names or ()) if k is not None]


def _unique(messages: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(messages))


class HeaderSchema:
    """Validated view over the header row of an import."""

    def __init__(self, data: Sequence[str], options: ImportOptions | None = None) -> None:
        self.options = options or ImportOptions()
        self.validate_options(self.options)
        self.data = list(data)

    @classmethod
    def validate_options(cls, options: ImportOptions) -> None:
        """Raise SchemaConfigError for contradictory key/column options."""
        primary = options.primary_key
        alternate = options.alternate_primary_key

        if primary is not None and not primary:
            raise SchemaConfigError("primary_key must not be empty when specified")

        legal = set(_keys(options.legal_columns))
        if legal:
            outside = [n for n in primary or () if column_key(n) not in legal]
            if outside:
                raise SchemaConfigError(f"primary_key columns must be legal columns: {outside}")
            outside = [n for n in alternate or () if column_key(n) not in legal]
            if outside:
                raise SchemaConfigError(f"alternate_primary_key columns must be legal columns: {outside}")

        if alternate is not None and primary is None:
            raise SchemaConfigError("alternate_primary_key requires primary_key")

        if alternate is not None and set(_keys(alternate)) == set(_keys(primary)):
            raise SchemaConfigError("alternate_primary_key must differ from primary_key")

    # -- columns -----------------------------------------------------------

    @cached_property
    def column_keys(self) -> list[str]:
        return [column_key(x) or "" for x in self.data]

    @cached_property
    def columns(self) -> list[Column]:
        key_keys = set(_keys(self._key_column_names))
        return [Column(name, is_primary_key=column_key(name) in key_keys) for name in self.data]

    @cached_property
    def column_map(self) -> dict[str, Column]:
        return {c.key: c for c in self.columns}

    def column_count(self) -> int:
        return len(self.data)

    def column_index(self, name: Any) -> int | None:
        """0-based position of a column, ignoring case and surrounding whitespace."""
        key = column_key(name)
        if key is None:
            return None
        try:
            return self.column_keys.index(key)
        except ValueError:
            return None

    def has_column(self, name: Any) -> bool:
        return self.column_index(name) is not None

    def primary_key_columns(self) -> list[Column]:
        """Columns forming the row identity key, in header order.

        The declared primary key when all of its columns are present, else
        the alternate primary key when none of the primary key columns are
        present and all of the alternate ones are, else nothing.
        """
        return [c for c in self.columns if c.is_primary_key]

    # -- validation --------------------------------------------------------

    def is_valid(self) -> bool:
        return (
            not self._missing_column_keys()
            and self._has_required_key_columns()
            and not self._has_duplicate_columns()
            and not self._illegal_column_keys()
        )

    def errors(self) -> list[str]:
        messages = [
            f"Multiple columns found for {name}, column headings must be unique"
            for name in self._duplicate_column_names()
        ]
        messages += [f"Unknown column {self._column_name(key)}" for key in self._illegal_column_keys()]
        messages += [f"Missing column {name}" for name in self._missing_column_names()]
        if not self._has_required_key_columns():
            messages += [f"Missing column {name}" for name in self._missing_primary_key_column_names()]
        return _unique(messages)

    # -- internals ---------------------------------------------------------

    @cached_property
    def _key_column_names(self) -> tuple[str, ...]:
        primary = self.options.primary_key
        if primary and self._has_all_columns(primary):
            return primary
        if self._uses_alternate_key():
            return self.options.alternate_primary_key or ()
        return ()

    def _has_all_columns(self, names: Iterable[str]) -> bool:
        present = set(self.column_keys)
        return all(k in present for k in _keys(names))

    def _has_no_columns(self, names: Iterable[str]) -> bool:
        present = set(self.column_keys)
        return not any(k in present for k in _keys(names))

    def _uses_alternate_key(self) -> bool:
        # only when the primary key is wholly absent from the header
        primary = self.options.primary_key
        alternate = self.options.alternate_primary_key
        return (
            bool(primary)
            and bool(alternate)
            and self._has_no_columns(primary)
            and self._has_all_columns(alternate)
        )

    def _has_required_key_columns(self) -> bool:
        primary = self.options.primary_key
        if not primary or self._has_all_columns(primary):
            return True
        return self._uses_alternate_key()

    def _has_duplicate_columns(self) -> bool:
        return len(self.data) != len(set(self.column_keys))

    def _duplicate_column_names(self) -> list[str]:
        counts = Counter(self.column_keys)
        return [self._column_name(key) for key, n in counts.items() if n > 1]

    def _column_name(self, key: str) -> str:
        return next(name for name in self.data if column_key(name) == key)

    def _illegal_column_keys(self) -> list[str]:
        legal = set(_keys(self.options.legal_columns))
        if not legal:
            return []
        return _unique(k for k in self.column_keys if k not in legal)

    def _missing_column_keys(self) -> list[str]:
        present = set(self.column_keys)
        return _unique(k for k in _keys(self.options.required_columns) if k not in present)

    def _missing_column_names(self) -> list[str]:
        return self._missing_names(self.options.required_columns)

    def _missing_primary_key_column_names(self) -> list[str]:
        return self._missing_names(self.options.primary_key)

    def _missing_names(self, names: Iterable[str] | None) -> list[str]:
        present = set(self.column_keys)
        missing: dict[str, str] = {}
        for name in names or ():
            key = column_key(name)
            if key not in present and key not in missing:
                missing[key] = name
        return list(missing.values())
