from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Column model and column key normalization.

Every column comparison in an import (header validation, cell lookup,
primary key resolution) goes through ``column_key`` so that
``"Column One"``, ``" column ONE"`` and ``"Column One\\t"`` address the
same column.
"""

__all__ = [
    "Column",
    "column_key",
    "underscore",
]


def column_key(name: Any) -> str | None:
    """Normalize a raw column name into its comparison key.

    Strings are lowercased and stripped. Enum members use their value,
    other objects their ``str()``. ``None`` has no key.
    """
    if name is None:
        return None
    if isinstance(name, Enum):
        name = name.value
    return str(name).lower().strip()


def underscore(key: str) -> str:
    """Replace spaces and hyphens with underscores."""
    return key.replace(" ", "_").replace("-", "_")


@dataclass(frozen=True)
class Column:
    """A single declared column of a header row."""
    name: str  # raw header cell text
    is_primary_key: bool = False

    @property
    def key(self) -> str:
        return column_key(self.name) or ""

    @property
    def model_attribute(self) -> str:
        """Attribute name used to address persistence-layer fields."""
        return underscore(self.key)
