from __future__ import annotations

from ..models.processing_result import ImportResult
from ..models.record_status import RecordStatus

"""SUMMARY line rendering for an import run."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line of an import.

    Format:
    SUMMARY rows={n} create={n} update={n} delete={n} not_changed={n}
    duplicate={n} errors={n} dry_run={true|false} elapsed_sec={s}

    Examples:
        >>> from csv_reconcile.models.processing_result import ImportResult, StatusCounts
        >>> result = ImportResult(
        ...     file_name="parts.tsv", dry_run=True, total_rows=3,
        ...     counts=StatusCounts.from_statuses(
        ...         [RecordStatus.CREATE, RecordStatus.CREATE, RecordStatus.DUPLICATE]),
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=3 create=2 update=0 delete=0 not_changed=0 duplicate=1 errors=0 dry_run=true elapsed_sec=2'
    """
    counts = result.counts
    return (
        f"SUMMARY rows={result.total_rows} "
        f"create={counts[RecordStatus.CREATE]} "
        f"update={counts[RecordStatus.UPDATE]} "
        f"delete={counts[RecordStatus.DELETE]} "
        f"not_changed={counts[RecordStatus.NOT_CHANGED]} "
        f"duplicate={counts[RecordStatus.DUPLICATE]} "
        f"errors={counts.errors} "
        f"dry_run={'true' if result.dry_run else 'false'} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
