"""Tests for migration configuration loading and validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chunk_migrator.errors import ConfigurationError
from chunk_migrator.models.migration import LookupPolicy, MigrationConfig


def test_defaults_are_valid() -> None:
    """The default configuration validates cleanly."""
    config = MigrationConfig()

    assert config.validate() == []
    assert config.chunk_size == 10
    assert config.lookup_policy == LookupPolicy.FAIL_OPEN


def test_from_dict_coerces_values() -> None:
    """String values from files or the environment are converted."""
    config = MigrationConfig.from_dict({
        "chunk_size": "25",
        "transform_workers": "4",
        "lookup_policy": "fail_closed",
        "write_timeout_seconds": "2.5",
        "seed_csv": "seed.csv",
    })

    assert config.chunk_size == 25
    assert config.transform_workers == 4
    assert config.lookup_policy == LookupPolicy.FAIL_CLOSED
    assert config.write_timeout_seconds == 2.5
    assert config.seed_csv == "seed.csv"


def test_to_dict_round_trips() -> None:
    """A serialized configuration loads back unchanged."""
    config = MigrationConfig(chunk_size=3, lookup_policy=LookupPolicy.FAIL_CLOSED, reports_dir="out")

    assert MigrationConfig.from_dict(config.to_dict()) == config


@pytest.mark.parametrize(
    "data",
    [
        {"chunk_size": "ten"},
        {"chunk_size": None},
        {"lookup_policy": "sometimes"},
        {"error_rate_threshold": "high"},
        {"fetch_size": [100]},
    ],
)
def test_from_dict_rejects_bad_values(data) -> None:
    """Unparseable values raise ConfigurationError."""
    with pytest.raises(ConfigurationError):
        MigrationConfig.from_dict(data)


def test_from_env_reads_prefixed_variables() -> None:
    """MIGRATION_* variables override the defaults."""
    config = MigrationConfig.from_env({
        "MIGRATION_SOURCE_URL": "postgresql://db/customers",
        "MIGRATION_TARGET_DATABASE": "crm",
        "MIGRATION_CHUNK_SIZE": "50",
        "UNRELATED": "x",
    })

    assert config.source_url == "postgresql://db/customers"
    assert config.target_database == "crm"
    assert config.chunk_size == 50
    assert config.target_collection == "customers"


def test_from_env_uses_process_environment(monkeypatch) -> None:
    """Without an explicit mapping, os.environ is read."""
    monkeypatch.setenv("MIGRATION_FETCH_SIZE", "7")

    assert MigrationConfig.from_env().fetch_size == 7


def test_from_json_file(tmp_path: Path) -> None:
    """Configuration loads from a JSON file."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"chunk_size": 5, "target_collection": "clients"}))

    config = MigrationConfig.from_json_file(str(path))

    assert config.chunk_size == 5
    assert config.target_collection == "clients"


@pytest.mark.parametrize("content", [None, "{not json"])
def test_from_json_file_errors(tmp_path: Path, content) -> None:
    """Missing or malformed files raise ConfigurationError."""
    path = tmp_path / "config.json"
    if content is not None:
        path.write_text(content)

    with pytest.raises(ConfigurationError):
        MigrationConfig.from_json_file(str(path))


def test_validate_reports_every_problem() -> None:
    """All invalid settings are reported together."""
    config = MigrationConfig(
        chunk_size=0,
        transform_workers=0,
        target_url="",
        write_timeout_seconds=-1,
        error_rate_threshold=150,
    )

    errors = config.validate()

    assert len(errors) == 5
    assert any("chunk_size" in e for e in errors)
    assert any("write_timeout_seconds" in e for e in errors)


def test_from_json_file_rejects_null_numbers(tmp_path: Path) -> None:
    """A null where a number is expected is a configuration error."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"chunk_size": None}))

    with pytest.raises(ConfigurationError):
        MigrationConfig.from_json_file(str(path))
