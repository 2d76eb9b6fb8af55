from __future__ import annotations

import logging
import time
from pathlib import Path

from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportOptions
from ..models.error_record import RowErrorRecord
from ..models.processing_result import ImportResult
from .progress import RowProgress
from .session import ImportSession

"""Run an import session end to end.

Reconciles every row of a structurally valid session (dry-run or commit,
as configured on the session), buffers per-row errors for the JSON Lines
error log and returns the aggregated ``ImportResult``.
"""

__all__ = [
    "STRUCTURE_STATUS",
    "ImportRunError",
    "open_session",
    "run_import",
]

logger = logging.getLogger(__name__)

STRUCTURE_STATUS = "STRUCTURE"
FIRST_DATA_ROW = 2  # header is row 1


def run_import(
    session: ImportSession,
    *,
    file_name: str = "<data>",
    error_log: ErrorLogBuffer | None = None,
    progress: bool | None = None,
) -> ImportResult:
    """Reconcile all rows of ``session``.

    Parameters
    ----------
    session: Import session to run
    file_name: Name used in log lines and error records
    error_log: Buffer receiving one RowErrorRecord per error message
    progress: Force the tqdm bar on/off (None = TTY detection)
    """
    start = time.perf_counter()
    records: list[RowErrorRecord] = []

    if not session.structure_valid():
        for message in session.structure_errors():
            logger.error(f"{file_name}: {message}")
            records.append(RowErrorRecord.create(file_name, -1, STRUCTURE_STATUS, message))
    else:
        rows = session.rows()
        logger.info(f"{file_name}: reconciling {len(rows)} rows (dry_run={session.options.dry_run})")
        with RowProgress(len(rows), enabled=progress) as bar:
            for number, row in enumerate(bar.track(rows), start=FIRST_DATA_ROW):
                status = row.status()
                errors = row.errors()
                logger.debug(f"{file_name}: row {number} {status.name}")
                for message in errors:
                    records.append(RowErrorRecord.create(file_name, number, status.name, message))
                if errors:
                    logger.warning(f"{file_name}: row {number} {status.name}: {'; '.join(errors)}")

    if error_log is not None:
        error_log.extend(records)

    return session.result(file_name=file_name, elapsed_seconds=time.perf_counter() - start)


class ImportRunError(Exception):
    """Raised when an import file cannot be opened."""


def open_session(path: Path, options: ImportOptions | None = None) -> ImportSession:
    """Read ``path`` into an ImportSession, wrapping read failures."""
    if not path.exists():
        raise ImportRunError(f"file not found: {path}")
    if not path.is_file():
        raise ImportRunError(f"not a file: {path}")
    try:
        return ImportSession.from_file(path, options)
    except Exception as e:
        raise ImportRunError(f"failed to read {path}: {e}") from e
