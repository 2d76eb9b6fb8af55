from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""RowErrorRecord model for error logging.

One record per row that finished with errors during an import run. The
structural error of a file (malformed input, wrong cell count, invalid
header) is logged with ``row=-1`` because it is not attributable to a
single data row.
"""

__all__ = [
    "RowErrorRecord",
]


@dataclass(frozen=True)
class RowErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Name of the imported file
        row: 1-based row number (header is row 1). -1 for file-level errors
        status: Reconciliation status name, or STRUCTURE for file-level errors
        message: Error message text
    """
    timestamp: str
    file: str
    row: int
    status: str
    message: str

    @staticmethod
    def create(file: str, row: int, status: str, message: str) -> RowErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return RowErrorRecord(timestamp=ts, file=file, row=row, status=status, message=message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
