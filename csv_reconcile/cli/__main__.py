from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from csv_reconcile.config.loader import ConfigError, ImportConfig, load_config
from csv_reconcile.db.table_model import TableModelFinder
from csv_reconcile.logging.error_log import ErrorLogBuffer
from csv_reconcile.logging.init import log_summary, set_debug, setup_logging
from csv_reconcile.models.config_models import DatabaseConfig, ImportOptions
from csv_reconcile.models.error_record import RowErrorRecord
from csv_reconcile.services.runner import STRUCTURE_STATUS, ImportRunError, open_session, run_import
from csv_reconcile.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and the YAML config (optional)
- Open the import file (.csv / .tsv / .txt / .xlsx)
- With a configured table: connect to PostgreSQL, reconcile every row
  through the table model finder, COMMIT unless dry-run
- Without a table: check header structure and duplicate keys only
- Print the SUMMARY line and exit with the contract exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string; environment variables win over the config file.

    Priority:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the ``database`` section of the config file
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 connection with an explicit transaction; always closed."""
    conn = psycopg2.connect(_resolve_dsn(db_cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        if not conn.closed:
            conn.rollback()
            conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="csv_reconcile", description="Validate and reconcile a CSV/TSV import against a table"
    )
    p.add_argument("file", help="Import file (.csv, .tsv, .txt, .xlsx)")
    p.add_argument("--config", default=None, help="YAML config file (default: config/import.yml if present)")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="Preview outcome, do not write")
    mode.add_argument("--commit", action="store_true", help="Write changes (overrides dry_run in config)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    return p.parse_args(argv)


def _load(args: argparse.Namespace) -> ImportConfig:
    if args.config:
        return load_config(Path(args.config))
    default = Path("config/import.yml")
    if default.exists():
        return load_config(default)
    return ImportConfig(options=ImportOptions())


def _check_structure(path: Path, options: ImportOptions, error_log: ErrorLogBuffer, logger: Any) -> int:
    """Structure + duplicate key check, used when no table is configured."""
    session = open_session(path, options)
    errors = session.structure_errors()
    for message in errors:
        logger.error(f"{path.name}: {message}")
        error_log.append(RowErrorRecord.create(path.name, -1, STRUCTURE_STATUS, message))
    duplicates = sum(1 for row in session.rows() if row.marked_as_duplicate)
    log_summary(f"rows={session.row_count()} duplicate={duplicates} structure_valid={'false' if errors else 'true'}")
    return EXIT_PARTIAL_FAILURE if errors or duplicates else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Read system args only when argv is None (tests call main([...]))
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = _load(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    options = cfg.options
    if args.dry_run:
        options = options.with_overrides(dry_run=True)
    elif args.commit:
        options = options.with_overrides(dry_run=False)

    path = Path(args.file)
    error_log = ErrorLogBuffer()
    progress = False if args.no_progress else None

    try:
        if cfg.table is None:
            logger.info(f"no table configured -> structure check only: {path}")
            code = _check_structure(path, options, error_log, logger)
        else:
            code = _reconcile(path, cfg, options, error_log, progress, logger)
    except ImportRunError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")
    return code


def _reconcile(
    path: Path,
    cfg: ImportConfig,
    options: ImportOptions,
    error_log: ErrorLogBuffer,
    progress: bool | None,
    logger: Any,
) -> int:
    assert cfg.table is not None
    with _db_connection(cfg.database) as conn:
        cursor = conn.cursor()
        finder = TableModelFinder(cursor, cfg.table)
        session = open_session(path, options.with_overrides(row_model_finder=finder))
        result = run_import(session, file_name=path.name, error_log=error_log, progress=progress)
        if options.dry_run or not result.structure_valid:
            conn.rollback()
            logger.info(f"mode={'dry-run' if options.dry_run else 'commit'} -> rolled back")
        else:
            conn.commit()
            logger.info("mode=commit -> committed")
        cursor.close()

    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS_ALL if result.succeeded else EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
