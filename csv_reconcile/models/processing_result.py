from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from .record_status import RecordStatus

"""Aggregated outcome of an import run."""

__all__ = [
    "ImportResult",
    "StatusCounts",
]


@dataclass(frozen=True)
class StatusCounts:
    """Per-status row counts."""
    counts: dict[RecordStatus, int] = field(default_factory=dict)

    @classmethod
    def from_statuses(cls, statuses: Iterable[RecordStatus]) -> StatusCounts:
        return cls(counts=dict(Counter(statuses)))

    def __getitem__(self, status: RecordStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def errors(self) -> int:
        return sum(n for status, n in self.counts.items() if status.is_error)


@dataclass(frozen=True)
class ImportResult:
    """Summary of one import (dry-run or commit)."""
    file_name: str
    dry_run: bool
    total_rows: int
    counts: StatusCounts
    structure_errors: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    failed_rows: int = 0  # rows whose errors() was non-empty

    @property
    def structure_valid(self) -> bool:
        return not self.structure_errors

    @property
    def succeeded(self) -> bool:
        return self.structure_valid and self.failed_rows == 0
