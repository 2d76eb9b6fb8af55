from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

from ..models.config_models import ImportOptions
from ..models.processing_result import ImportResult, StatusCounts
from ..tabular.header import HeaderSchema, SchemaConfigError
from ..tabular.reader import MalformedInputError, decode_text, delimiter_for, read_table_file, tokenize
from ..tabular.row import RowRecord

"""Import session orchestration.

An ``ImportSession`` turns raw delimited text (or pre-tokenized rows) into
one header schema plus one ``RowRecord`` per data row, and flags rows whose
identity key was already used earlier in the same import.

Parsing runs at most once, on first access to any public accessor. A
structural problem (malformed input, wrong cell count, unexpected failure)
is captured as a single message and stops row creation; it never raises
out of the session.
"""

__all__ = [
    "ImportSession",
    "ParseError",
]

logger = logging.getLogger(__name__)

Tokenizer = Callable[[str, str], Sequence[Sequence[str]]]

MALFORMED_MESSAGE = "The data could not be parsed. Please check for formatting errors: {}"
UNEXPECTED_MESSAGE = (
    "An unexpected error occurred. Please try again or contact support if the issue persists: {}"
)


class ParseError(Exception):
    """Raised during parsing when the row structure is inconsistent."""


def _is_blank_key(key: Any) -> bool:
    if key is None:
        return True
    if isinstance(key, str):
        return key.strip() == ""
    if isinstance(key, (list, tuple)):
        return all(v is None or (isinstance(v, str) and v.strip() == "") for v in key)
    return False


def _hashable_key(key: Any) -> Any:
    if isinstance(key, list):
        return tuple(key)
    return key


class ImportSession:
    """Header + rows of one tabular import."""

    def __init__(
        self,
        data: str | bytes | Iterable[Sequence[str]],
        options: ImportOptions | None = None,
        *,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        self.data = data
        self.options = options or ImportOptions()
        self.tokenizer = tokenizer or tokenize
        # Fail before any data is read when the options contradict each other.
        # Header classes without their own validator get the default rules.
        validate = getattr(self._header_class, "validate_options", HeaderSchema.validate_options)
        validate(self.options)
        self._parsed = False
        self._header: HeaderSchema | None = None
        self._rows: list[RowRecord] = []
        self._parse_error: str | None = None

    @classmethod
    def from_file(cls, path: Path, options: ImportOptions | None = None) -> ImportSession:
        """Open a .csv/.tsv/.txt or spreadsheet file as an import session."""
        options = options or ImportOptions()
        data = read_table_file(path)
        if isinstance(data, bytes):
            options = options.with_overrides(delimiter=delimiter_for(path, options.delimiter))
        return cls(data, options)

    # -- public accessors --------------------------------------------------

    def header(self) -> HeaderSchema:
        self._ensure_parsed()
        assert self._header is not None
        return self._header

    def rows(self) -> list[RowRecord]:
        self._ensure_parsed()
        return self._rows

    def row_count(self) -> int:
        self._ensure_parsed()
        return len(self._rows)

    def parse_error(self) -> str | None:
        self._ensure_parsed()
        return self._parse_error

    def structure_errors(self) -> list[str]:
        self._ensure_parsed()
        if self._parse_error:
            return [self._parse_error]
        assert self._header is not None
        if not self._header.is_valid():
            return self._header.errors()
        return []

    def structure_valid(self) -> bool:
        self._ensure_parsed()
        assert self._header is not None
        return self._parse_error is None and self._header.is_valid()

    def result(self, file_name: str = "<data>", elapsed_seconds: float = 0.0) -> ImportResult:
        """Reconcile every row (once) and aggregate the outcome."""
        # rows of a structurally invalid import are never reconciled
        rows = self.rows() if self.structure_valid() else []
        statuses = [row.status() for row in rows]
        return ImportResult(
            file_name=file_name,
            dry_run=self.options.dry_run,
            total_rows=self.row_count(),
            counts=StatusCounts.from_statuses(statuses),
            structure_errors=self.structure_errors(),
            elapsed_seconds=elapsed_seconds,
            failed_rows=sum(1 for row in rows if row.errors()),
        )

    # -- parsing -----------------------------------------------------------

    @property
    def _header_class(self) -> type[HeaderSchema]:
        return self.options.header_class or HeaderSchema

    @property
    def _row_class(self) -> type[RowRecord]:
        return self.options.row_class or RowRecord

    def _ensure_parsed(self) -> None:
        if self._parsed:
            return
        self._parsed = True
        try:
            self._parse()
        except SchemaConfigError:
            raise
        except MalformedInputError as e:
            self._fail(MALFORMED_MESSAGE.format(e))
        except ParseError as e:
            self._fail(str(e))
        except Exception as e:
            logger.exception("unexpected error while parsing import data")
            self._fail(UNEXPECTED_MESSAGE.format(e))
        if self._header is None:
            self._header = self._header_class([], self.options)

    def _fail(self, message: str) -> None:
        logger.warning(f"structure: {message}")
        self._parse_error = message
        self._rows = []

    def _tokenize(self) -> Sequence[Sequence[str]]:
        if isinstance(self.data, (str, bytes)):
            text = decode_text(self.data) if isinstance(self.data, bytes) else self.data
            return self.tokenizer(text, self.options.delimiter)
        return [list(row) for row in self.data]

    def _parse(self) -> None:
        table = self._tokenize()
        logger.debug(f"parsing {len(table)} rows")
        detect = self.options.detect_duplicate_rows
        seen: set[Any] = set()

        for index, cells in enumerate(table):
            if index == 0:
                self._header = self._header_class(cells, self.options)
            assert self._header is not None

            expected = self._header.column_count()
            if len(cells) != expected:
                raise ParseError(
                    f"Each row should have exactly {expected} columns. Error on row {index + 1}."
                )
            if index == 0:
                continue

            row = self._row_class(self._header, cells, self.options)
            if detect:
                key = row.key()
                if not _is_blank_key(key):
                    hashable = _hashable_key(key)
                    if hashable in seen:
                        logger.debug(f"row {index + 1}: duplicate key {key!r}")
                        row.mark_as_duplicate()
                    else:
                        seen.add(hashable)
            self._rows.append(row)

        logger.debug(f"parsed {len(self._rows)} data rows")
