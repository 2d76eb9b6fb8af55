from __future__ import annotations

from enum import Enum

"""Reconciliation status enum.

A row ends up in exactly one of these states once its reconciliation
adaptor has been saved (dry-run or commit). States are terminal.
"""

__all__ = [
    "RecordStatus",
]


class RecordStatus(Enum):
    """Outcome classification of a single imported row.

    - UNKNOWN: defensive default, not reachable with well-formed handles
    - ERROR_ON_READ: no record could be found or constructed for the row
    - NOT_CHANGED: existing record, row carried no changes
    - DUPLICATE: dry-run only, key already used by an earlier row
    - CREATE / UPDATE / DELETE: successful (or would-be successful) action
    - ERROR_ON_CREATE / ERROR_ON_UPDATE / ERROR_ON_DELETE: failed action
    """
    UNKNOWN = 0
    ERROR_ON_READ = 1
    NOT_CHANGED = 2
    DUPLICATE = 3
    CREATE = 4
    DELETE = 5
    UPDATE = 6
    ERROR_ON_CREATE = 7
    ERROR_ON_DELETE = 8
    ERROR_ON_UPDATE = 9

    @property
    def is_error(self) -> bool:
        return self in _ERROR_STATUSES

    @property
    def label(self) -> str:
        return self.name.lower()


_ERROR_STATUSES = frozenset({
    RecordStatus.UNKNOWN,
    RecordStatus.ERROR_ON_READ,
    RecordStatus.ERROR_ON_CREATE,
    RecordStatus.ERROR_ON_DELETE,
    RecordStatus.ERROR_ON_UPDATE,
})
