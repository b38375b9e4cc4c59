"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest
from sqlalchemy import create_engine, text

from chunk_migrator.loaders.chunk_writer import ChunkWriter
from chunk_migrator.models.migration import LookupPolicy, MigrationConfig
from chunk_migrator.models.record import SourceRecord
from chunk_migrator.orchestrator import MigrationOrchestrator
from chunk_migrator.services.duplicate_filter import DuplicateFilter
from chunk_migrator.services.transformer import CustomerTransformer
from tests.fakes import InMemoryTargetStore, ListExtractor

FIXTURES_ROOT = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def store() -> InMemoryTargetStore:
    return InMemoryTargetStore()


@pytest.fixture
def seed_csv() -> Path:
    return FIXTURES_ROOT / "customers_seed.csv"


@pytest.fixture
def make_orchestrator(store: InMemoryTargetStore) -> Callable[..., MigrationOrchestrator]:
    """Factory wiring an orchestrator over a list of source records and the in-memory store."""

    def _make(
        records: Sequence[SourceRecord] | None = None,
        extractor=None,
        chunk_size: int = 10,
        policy: LookupPolicy = LookupPolicy.FAIL_OPEN,
        **config_overrides,
    ) -> MigrationOrchestrator:
        duplicate_filter = DuplicateFilter(store, policy=policy)
        config = MigrationConfig(chunk_size=chunk_size, lookup_policy=policy, **config_overrides)
        return MigrationOrchestrator(
            extractor=extractor or ListExtractor(records or []),
            transformer=CustomerTransformer(duplicate_filter),
            writer=ChunkWriter(store, duplicate_filter=duplicate_filter),
            config=config,
        )

    return _make


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """SQLite database holding a customers table with four rows."""
    url = f"sqlite:///{tmp_path / 'source.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE customers ("
            "id INTEGER PRIMARY KEY, name TEXT, last_name TEXT, email TEXT, "
            "country TEXT, registered_at TEXT)"
        ))
        connection.execute(
            text(
                "INSERT INTO customers (id, name, last_name, email, country, registered_at) "
                "VALUES (:id, :name, :last_name, :email, :country, :registered_at)"
            ),
            [
                {"id": 3, "name": "carla", "last_name": "ruiz", "email": "carla@example.com",
                 "country": "chile", "registered_at": "2024-03-01 09:00:00"},
                {"id": 1, "name": "ana", "last_name": "lopez", "email": "ana@example.com",
                 "country": "mexico", "registered_at": "2024-01-01 09:00:00"},
                {"id": 2, "name": "bob", "last_name": "smith", "email": "bob@example.com",
                 "country": "usa", "registered_at": None},
                {"id": 4, "name": "dan", "last_name": "gray", "email": "  ",
                 "country": "peru", "registered_at": "2024-04-01 09:00:00"},
            ],
        )
    engine.dispose()
    return url
