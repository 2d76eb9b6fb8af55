"""Domain models for the tabular import core.

This package contains the plain data types shared by the header schema,
the rows, the reconciliation adaptor and the import session.
"""

from .column import Column, column_key, underscore
from .config_models import DatabaseConfig, ImportOptions, TableConfig
from .contracts import PersistenceHandle, RowModelFinder, RowModelMapper
from .error_record import RowErrorRecord
from .processing_result import ImportResult, StatusCounts
from .record_status import RecordStatus

__all__ = [
    # Columns
    "Column",
    "column_key",
    "underscore",
    # Configuration models
    "DatabaseConfig",
    "ImportOptions",
    "TableConfig",
    # Collaborator contracts
    "PersistenceHandle",
    "RowModelFinder",
    "RowModelMapper",
    # Results
    "ImportResult",
    "RecordStatus",
    "RowErrorRecord",
    "StatusCounts",
]
