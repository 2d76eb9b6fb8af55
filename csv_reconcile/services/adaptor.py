from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..models.contracts import PersistenceHandle
from ..models.record_status import RecordStatus

"""Reconciliation adaptor around a persistence handle.

The adaptor wraps the handle a model finder returned for a row (or the
absence of one) and turns a single ``save(dry_run)`` call into a
``RecordStatus``. The handle's state is captured once, before anything is
persisted, and the status is derived from that snapshot only.
"""

__all__ = [
    "ReconciliationAdaptor",
    "StatusSnapshot",
    "MISSING_RECORD_ERROR",
    "UNREADABLE_RECORD_ERROR",
]

MISSING_RECORD_ERROR = "Record could not be created or updated"
UNREADABLE_RECORD_ERROR = "Record state could not be read: {}"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusSnapshot:
    """Handle state captured at save time."""
    dry_run: bool
    was_changed: bool
    was_marked_for_deletion: bool
    was_editable: bool
    was_new: bool
    was_valid: bool
    was_saved: bool


class ReconciliationAdaptor:
    """Uniform status/validity/error/save contract over an optional handle."""

    def __init__(self, handle: PersistenceHandle | None) -> None:
        self.handle = handle
        self.snapshot: StatusSnapshot | None = None
        self._is_duplicate = False
        self._dry_run = False
        self._read_error: str | None = None

    @property
    def is_duplicate(self) -> bool:
        return self._is_duplicate

    @property
    def read_error(self) -> str | None:
        """Message of a handle failure before persistence, if any."""
        return self._read_error

    def mark_as_duplicate(self) -> None:
        self._is_duplicate = True

    def assign_attributes(self, attributes: Mapping[str, Any]) -> None:
        if self.handle is None:
            return
        try:
            self.handle.assign_attributes(attributes)
        except Exception as e:
            self._fail_read("assigning attributes", e)

    def is_valid(self) -> bool:
        if self.handle is None or self._read_error is not None:
            return False
        return bool(self.handle.is_valid())

    def errors(self) -> list[str]:
        if self.handle is None:
            return [MISSING_RECORD_ERROR]
        if self._read_error is not None:
            return [self._read_error]
        value = self.handle.errors()
        full_messages = getattr(value, "full_messages", None)
        if callable(full_messages):
            value = full_messages()
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)

    def save(self, dry_run: bool = False) -> bool:
        """Capture the handle state and persist it unless this is a dry-run.

        Returns whether the record was (or in a dry-run, would be) saved.
        """
        self._dry_run = dry_run
        handle = self.handle
        if handle is None or self._read_error is not None:
            return False

        # Snapshot order matters: validity is checked last, after the
        # attributes were assigned and before anything is persisted.
        try:
            was_changed = bool(handle.is_changed())
            was_marked_for_deletion = bool(handle.is_marked_for_deletion())
            was_editable = self._is_editable()
            was_new = bool(handle.is_new_record())
            was_valid = bool(handle.is_valid())
        except Exception as e:
            self._fail_read("reading record state", e)
            return False

        was_saved = was_editable and was_valid and (dry_run or self._persist(was_marked_for_deletion))

        self.snapshot = StatusSnapshot(
            dry_run=dry_run,
            was_changed=was_changed,
            was_marked_for_deletion=was_marked_for_deletion,
            was_editable=was_editable,
            was_new=was_new,
            was_valid=was_valid,
            was_saved=was_saved,
        )
        return was_saved

    def status(self) -> RecordStatus:
        if self.handle is None or self._read_error is not None:
            return RecordStatus.ERROR_ON_READ
        if self._dry_run and self._is_duplicate:
            return RecordStatus.DUPLICATE
        snap = self.snapshot
        if snap is None:
            return RecordStatus.UNKNOWN
        if snap.was_new:
            if snap.was_marked_for_deletion:
                return RecordStatus.ERROR_ON_DELETE
            if not snap.was_valid:
                return RecordStatus.ERROR_ON_CREATE
            return RecordStatus.CREATE
        if snap.was_marked_for_deletion:
            return RecordStatus.DELETE
        if not snap.was_changed:
            return RecordStatus.NOT_CHANGED
        if snap.was_valid and snap.was_saved:
            return RecordStatus.UPDATE
        # not editable, not valid, or the persist call failed
        return RecordStatus.ERROR_ON_UPDATE

    def _is_editable(self) -> bool:
        is_editable = getattr(self.handle, "is_editable", None)
        if is_editable is None:
            return True
        return bool(is_editable())

    def _fail_read(self, action: str, error: Exception) -> None:
        logger.warning(f"{action} failed: {error}")
        self._read_error = UNREADABLE_RECORD_ERROR.format(error)

    def _persist(self, destroy: bool) -> bool:
        handle = self.handle
        assert handle is not None
        if self._is_duplicate:
            # An earlier row of the same import already took this identity.
            logger.debug("skipping persistence of duplicate row")
            return False
        try:
            if destroy:
                logger.debug("destroying record")
                return handle.destroy() is not False
            logger.debug("saving record")
            return bool(handle.save())
        except Exception as e:
            logger.warning(f"persistence failed: {e}")
            return False
