from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

"""Collaborator contracts consumed by row reconciliation.

The import core never talks to storage directly. It asks a model finder
for a persistence handle per row, optionally maps attribute names through
a model mapper, and drives the handle through the fixed method set below.
"""

__all__ = [
    "PersistenceHandle",
    "RowModelFinder",
    "RowModelMapper",
]


@runtime_checkable
class PersistenceHandle(Protocol):
    """Record handle returned by a model finder.

    ``errors()`` may return a list of strings or an object exposing
    ``full_messages()``. An ``is_editable()`` method is optional; handles
    without it are treated as editable.
    """

    def assign_attributes(self, attributes: Mapping[str, Any]) -> None: ...

    def is_valid(self) -> bool: ...

    def errors(self) -> Any: ...

    def is_changed(self) -> bool: ...

    def is_marked_for_deletion(self) -> bool: ...

    def is_new_record(self) -> bool: ...

    def save(self) -> bool: ...

    def destroy(self) -> Any: ...


@runtime_checkable
class RowModelFinder(Protocol):
    """Locates or constructs the persistence handle for a row."""

    def find_row_model(self, key_attributes: Mapping[str, Any]) -> PersistenceHandle | None: ...

    def new_row_model(self, key_attributes: Mapping[str, Any]) -> PersistenceHandle | None: ...


@runtime_checkable
class RowModelMapper(Protocol):
    """Renames or transforms attribute mappings before they reach a handle."""

    def map_all_attributes(self, attributes: dict[str, Any]) -> dict[str, Any]: ...

    def map_key_attributes(self, attributes: dict[str, Any]) -> dict[str, Any]: ...
