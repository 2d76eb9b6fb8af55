from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import RowErrorRecord

"""Row error log buffering.

Errors collected during an import run are buffered in memory and written
as JSON Lines (one ``RowErrorRecord`` per line, fixed keys) to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC). The file path is decided on
first use; nothing is written when no error was recorded.
"""

__all__ = [
    "ErrorLogBuffer",
    "RowErrorRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for row error records. Flush appends JSON Lines.

    Not thread safe; an import session is processed serially.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir or LOGS_DIR
        self._records: list[RowErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[RowErrorRecord]:
        return list(self._records)

    def append(self, record: RowErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[RowErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the log path, or None if nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
