"""Header validation, duplicate detection and row reconciliation for tabular imports."""

from .models.column import Column, column_key
from .models.config_models import ImportOptions
from .models.record_status import RecordStatus
from .services.adaptor import ReconciliationAdaptor
from .services.session import ImportSession, ParseError
from .tabular.header import HeaderSchema, SchemaConfigError
from .tabular.reader import MalformedInputError, tokenize
from .tabular.row import RowRecord

__all__ = [
    "Column",
    "HeaderSchema",
    "ImportOptions",
    "ImportSession",
    "MalformedInputError",
    "ParseError",
    "ReconciliationAdaptor",
    "RecordStatus",
    "RowRecord",
    "SchemaConfigError",
    "column_key",
    "tokenize",
]

__version__ = "0.1.0"
