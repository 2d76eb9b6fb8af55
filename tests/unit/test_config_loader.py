from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from csv_reconcile.config.loader import ConfigError, _validate_config_schema, build_config, load_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.options.required_columns == ("Part Number",)
    assert cfg.options.legal_columns == ("Part Number", "Description", "Delete")
    assert cfg.options.primary_key == ("Part Number",)
    assert cfg.options.alternate_primary_key is None
    assert cfg.options.detect_duplicate_rows is True
    assert cfg.options.dry_run is False
    assert cfg.options.delimiter == "\t"
    assert cfg.table.name == "parts"
    assert cfg.table.delete_column == "delete"
    assert cfg.table.required_attributes == ("part_number",)
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None


def test_load_config_minimal(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("dry_run: true\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.options.dry_run is True
    assert cfg.options.primary_key is None
    assert cfg.table is None


def test_load_config_empty_file(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).options.required_columns == ()


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "config" / "not_exists.yml")
    assert "config file not found" in str(e.value)


def test_load_config_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("columns: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(path)
    assert "invalid yaml" in str(e.value)


def test_load_config_root_not_mapping(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(path)
    assert "config root must be a mapping" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_table_without_name(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("  name: parts\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_long_delimiter(write_config: Path):
    write_config.write_text(write_config.read_text(encoding="utf-8") + 'delimiter: ";;"\n', encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


def test_load_config_contradictory_columns(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "  primary_key: [Part Number]", "  primary_key: [Serial]"
    )
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid column options" in str(e.value)


def test_build_config_alternate_without_primary():
    with pytest.raises(ConfigError) as e:
        build_config({"columns": {"alternate_primary_key": ["sku"]}})
    assert "alternate_primary_key requires primary_key" in str(e.value)


def test_build_config_defaults():
    cfg = build_config({})
    assert cfg.options.detect_duplicate_rows is True
    assert cfg.table is None
    assert cfg.database.host is None


def test_validate_config_schema_missing_schema_file():
    with patch("csv_reconcile.config.loader.SCHEMA_PATH", Path("/nonexistent/schema.json")):
        with pytest.raises(ConfigError) as e:
            _validate_config_schema({})
        assert "config schema not found" in str(e.value)


def test_validate_config_schema_invalid_json_schema():
    with tempfile.TemporaryDirectory() as d:
        broken = Path(d) / "schema.json"
        broken.write_text("{ not json", encoding="utf-8")
        with patch("csv_reconcile.config.loader.SCHEMA_PATH", broken):
            with pytest.raises(ConfigError) as e:
                _validate_config_schema({})
        assert "invalid schema file" in str(e.value)
