from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportOptions, TableConfig
from ..tabular.header import HeaderSchema, SchemaConfigError

"""YAML configuration loader.

Responsibilities:
- Load the import YAML file
- Validate it against the packaged JSON schema (unknown keys rejected)
- Translate it into ``ImportOptions`` / ``TableConfig`` / ``DatabaseConfig``
- Reject contradictory column options up front (same rules as HeaderSchema)
"""

SCHEMA_PATH = Path(__file__).with_name("import_schema.json")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ImportConfig:
    options: ImportOptions
    table: TableConfig | None = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or
            the config data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _tuple(value: Any) -> tuple[str, ...] | None:
    return None if value is None else tuple(value)


def build_config(data: dict[str, Any]) -> ImportConfig:
    """Translate already-validated config data into config objects."""
    cols = data.get("columns", {})
    options = ImportOptions(
        required_columns=_tuple(cols.get("required")) or (),
        legal_columns=_tuple(cols.get("legal")) or (),
        primary_key=_tuple(cols.get("primary_key")),
        alternate_primary_key=_tuple(cols.get("alternate_primary_key")),
        detect_duplicate_rows=data.get("detect_duplicate_rows", True),
        dry_run=data.get("dry_run", False),
        delimiter=data.get("delimiter", "\t"),
    )
    try:
        HeaderSchema.validate_options(options)
    except SchemaConfigError as e:
        raise ConfigError(f"invalid column options: {e}") from e

    table = None
    table_raw = data.get("table")
    if table_raw:
        table = TableConfig(
            name=table_raw["name"],
            key_columns=_tuple(table_raw.get("key_columns")) or (),
            delete_column=table_raw.get("delete_column"),
            required_attributes=_tuple(table_raw.get("required_attributes")) or (),
        )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(options=options, table=table, database=db)


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return build_config(data)
