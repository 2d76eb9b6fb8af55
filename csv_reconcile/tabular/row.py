from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.column import Column
from ..models.config_models import ImportOptions
from ..models.contracts import PersistenceHandle
from ..models.record_status import RecordStatus
from ..services.adaptor import ReconciliationAdaptor
from .header import HeaderSchema

"""Data row of an import and its reconciliation front-end.

A ``RowRecord`` resolves cell values by column name or position, derives
the row identity key and, on first access to ``errors()``, ``status()`` or
``is_valid()``, reconciles itself against the persistence layer exactly
once.
"""

__all__ = [
    "RowRecord",
]

logger = logging.getLogger(__name__)


class RowRecord:
    """One data row plus the shared header it was parsed with."""

    def __init__(
        self,
        header: HeaderSchema,
        data: Sequence[str],
        options: ImportOptions | None = None,
    ) -> None:
        self.header = header
        self.data = list(data)
        self.options = options or ImportOptions()
        self._marked_as_duplicate = False
        self._processed = False
        self._model_instance: ReconciliationAdaptor | None = None
        self._all_attributes: dict[str, Any] | None = None
        self._key_attributes: dict[str, Any] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.data!r})"

    # -- cell access -------------------------------------------------------

    def index(self, value: Any) -> str | None:
        """Cell at a column name or 0-based position; None when absent."""
        if isinstance(value, int) and not isinstance(value, bool):
            position: int | None = value
        else:
            position = self.header.column_index(value)
        if position is None or position < 0 or position >= len(self.data):
            return None
        return self.data[position]

    def __getitem__(self, value: Any) -> str | None:
        return self.index(value)

    def key(self) -> str | list[str | None] | None:
        """Identity key of the row.

        The single key cell for a one-column primary key, the list of key
        cells for a composite key, the whole row when no key is declared.
        """
        cols = self.primary_key_columns()
        if len(cols) == 1:
            return self.index(cols[0].key)
        if cols:
            return [self.index(c.key) for c in cols]
        return list(self.data)

    def primary_key_columns(self) -> list[Column]:
        return self.header.primary_key_columns()

    # -- duplicate flag ----------------------------------------------------

    @property
    def marked_as_duplicate(self) -> bool:
        return self._marked_as_duplicate

    def mark_as_duplicate(self) -> bool:
        self._marked_as_duplicate = True
        return True

    # -- attribute mapping -------------------------------------------------

    def all_attributes(self) -> dict[str, Any]:
        """Every header column mapped to its model attribute name."""
        if self._all_attributes is None:
            attributes = self._attributes_for(self.header.columns)
            mapper = self.options.row_model_mapper
            self._all_attributes = mapper.map_all_attributes(attributes) if mapper else attributes
        return self._all_attributes

    def key_attributes(self) -> dict[str, Any]:
        """Attributes used to look up an existing record."""
        if self._key_attributes is None:
            cols = self.primary_key_columns() or self.header.columns
            attributes = self._attributes_for(cols)
            mapper = self.options.row_model_mapper
            self._key_attributes = mapper.map_key_attributes(attributes) if mapper else attributes
        return self._key_attributes

    def _attributes_for(self, cols: Sequence[Column]) -> dict[str, Any]:
        return {col.model_attribute: self.index(col.key) for col in cols}

    # -- row-local model source --------------------------------------------

    def find_row_model(self, key_attributes: Mapping[str, Any]) -> PersistenceHandle | None:
        """Override in a row class to locate records without a finder."""
        return None

    def new_row_model(self, key_attributes: Mapping[str, Any]) -> PersistenceHandle | None:
        """Override in a row class to construct records without a finder."""
        return None

    # -- reconciliation ----------------------------------------------------

    @property
    def is_dry_run(self) -> bool:
        return self.options.dry_run

    def errors(self) -> list[str]:
        self._ensure_processed()
        messages: list[str] = []
        if self._marked_as_duplicate and self.is_dry_run:
            messages.append(self._duplicate_row_error())
        model = self.model_instance()
        if not model.is_valid():
            messages.extend(model.errors())
        return messages

    def status(self) -> RecordStatus:
        self._ensure_processed()
        return self.model_instance().status()

    def is_valid(self) -> bool:
        self._ensure_processed()
        return not self.errors()

    def model_instance(self) -> ReconciliationAdaptor:
        if self._model_instance is None:
            self._model_instance = ReconciliationAdaptor(self._resolve_model())
        return self._model_instance

    def _resolve_model(self) -> PersistenceHandle | None:
        try:
            return self._find_or_build_model()
        except Exception as e:
            logger.warning(f"model lookup failed for {self.data!r}: {e}")
            return None

    def _find_or_build_model(self) -> PersistenceHandle | None:
        keys = self.key_attributes()
        finder = self.options.row_model_finder
        handle = self.find_row_model(keys)
        if handle is None and finder is not None:
            handle = finder.find_row_model(keys)
        if handle is None:
            handle = self.new_row_model(keys)
        if handle is None and finder is not None:
            handle = finder.new_row_model(keys)
        return handle

    def _duplicate_row_error(self) -> str:
        names = [c.name for c in self.primary_key_columns()]
        return f"Duplicate {', '.join(names)}" if names else "Duplicate row"

    def _ensure_processed(self) -> None:
        if self._processed:
            return
        self._processed = True
        model = self.model_instance()
        model.assign_attributes(self.all_attributes())
        if self._marked_as_duplicate:
            model.mark_as_duplicate()
        model.save(dry_run=self.is_dry_run)
