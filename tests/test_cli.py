"""Tests for the command line entry point."""

from __future__ import annotations

import json
from pathlib import Path

from chunk_migrator import cli
from chunk_migrator.extractors.csv_extractor import CSVExtractor
from chunk_migrator.loaders.chunk_writer import ChunkWriter
from chunk_migrator.orchestrator import MigrationOrchestrator
from chunk_migrator.services.duplicate_filter import DuplicateFilter
from chunk_migrator.services.transformer import CustomerTransformer
from tests.fakes import InMemoryTargetStore


def _patch_builder(monkeypatch, store: InMemoryTargetStore, seen: list) -> None:
    def build(config):
        seen.append(config)
        duplicate_filter = DuplicateFilter(store, policy=config.lookup_policy)
        return MigrationOrchestrator(
            extractor=CSVExtractor(config.seed_csv),
            transformer=CustomerTransformer(duplicate_filter),
            writer=ChunkWriter(store, duplicate_filter=duplicate_filter),
            config=config,
        )

    monkeypatch.setattr(cli, "build_orchestrator", build)


def test_run_migrates_seed_file(monkeypatch, capsys, seed_csv: Path) -> None:
    """run prints the summary and exits 0 on a completed migration."""
    store = InMemoryTargetStore()
    seen: list = []
    _patch_builder(monkeypatch, store, seen)

    code = cli.main(["run", "--seed-csv", str(seed_csv), "--chunk-size", "2"])

    summary = json.loads(capsys.readouterr().out)
    assert code == 0
    assert seen[0].chunk_size == 2
    assert summary["final_status"] == "COMPLETED"
    assert summary["statistics"]["records_written"] == 2
    assert summary["statistics"]["records_skipped"] == 1
    assert store.documents[0]["name"] == "Juan Carlos"
    assert store.documents[0]["email"] == "juan.perez@example.com"


def test_run_exits_nonzero_on_failure(monkeypatch, capsys, tmp_path: Path) -> None:
    """A failed run exits with status 1."""
    _patch_builder(monkeypatch, InMemoryTargetStore(), [])

    code = cli.main(["run", "--seed-csv", str(tmp_path / "missing.csv")])

    assert code == 1
    assert json.loads(capsys.readouterr().out)["final_status"] == "FAILED"


def test_check_reports_missing_source(monkeypatch, capsys, tmp_path: Path) -> None:
    """check fails when the seed file is not there."""
    _patch_builder(monkeypatch, InMemoryTargetStore(), [])

    code = cli.main(["check", "--seed-csv", str(tmp_path / "missing.csv")])

    assert code == 1
    assert "Seed file not found" in capsys.readouterr().out


def test_invalid_config_exits_with_two(tmp_path: Path) -> None:
    """An unreadable configuration file is a usage error."""
    assert cli.main(["run", "--config", str(tmp_path / "nope.json")]) == 2
