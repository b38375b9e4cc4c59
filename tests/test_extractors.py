"""Tests for the SQL and CSV record readers."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from chunk_migrator.errors import SourceReadError, SourceUnavailable
from chunk_migrator.extractors.csv_extractor import CSVExtractor
from chunk_migrator.extractors.sql_extractor import SQLExtractor


def test_sql_extractor_streams_in_id_order(sqlite_url: str) -> None:
    """Rows should come back ordered by ascending id whatever the insert order."""
    records = list(SQLExtractor.from_url(sqlite_url, fetch_size=2).stream())

    assert [r.id for r in records] == [1, 2, 3, 4]
    assert records[0].name == "ana"
    assert records[0].registered_at == datetime(2024, 1, 1, 9, 0)
    assert records[1].registered_at is None
    assert records[3].email == "  "


def test_sql_extractor_restarts_from_the_beginning(sqlite_url: str) -> None:
    """Every stream opens a fresh cursor."""
    extractor = SQLExtractor.from_url(sqlite_url)

    first = next(iter(extractor.stream()))
    again = list(extractor.stream())

    assert first.id == 1
    assert len(again) == 4


def test_sql_extractor_counts_rows(sqlite_url: str) -> None:
    """count() and validate_source() should see the table."""
    extractor = SQLExtractor.from_url(sqlite_url)

    assert extractor.count() == 4
    assert extractor.validate_source() == []


def test_sql_extractor_unreachable_source(tmp_path: Path) -> None:
    """A database that cannot be opened raises SourceUnavailable."""
    url = f"sqlite:///{tmp_path / 'missing-dir' / 'source.db'}"

    with pytest.raises(SourceUnavailable):
        list(SQLExtractor.from_url(url).stream())


def test_sql_extractor_missing_table(tmp_path: Path) -> None:
    """Querying a table that does not exist raises SourceReadError."""
    url = f"sqlite:///{tmp_path / 'empty.db'}"
    extractor = SQLExtractor.from_url(url)

    with pytest.raises(SourceReadError):
        list(extractor.stream())
    assert extractor.validate_source()
    assert extractor.count() is None


def test_sql_extractor_bad_timestamp(tmp_path: Path) -> None:
    """An unparseable registered_at value fails the read."""
    url = f"sqlite:///{tmp_path / 'bad.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT, last_name TEXT, "
            "email TEXT, country TEXT, registered_at TEXT)"
        ))
        connection.execute(text(
            "INSERT INTO customers VALUES (1, 'a', 'b', 'a@example.com', 'c', 'not a date')"
        ))
    engine.dispose()

    with pytest.raises(SourceReadError) as excinfo:
        list(SQLExtractor.from_url(url).stream())

    assert excinfo.value.row_number == 1


def test_sql_extractor_rejects_invalid_table_name(sqlite_url: str) -> None:
    """Table names are interpolated into SQL, so only identifiers are accepted."""
    with pytest.raises(ValueError):
        SQLExtractor(create_engine(sqlite_url), table="customers; DROP TABLE customers")


def test_csv_extractor_reads_seed_file(seed_csv: Path) -> None:
    """The seed file maps lastName and numbers rows without an id column."""
    records = list(CSVExtractor(str(seed_csv)).stream())

    assert [r.id for r in records] == [1, 2, 3]
    assert records[0].name == "juan carlos"
    assert records[0].last_name == "PEREZ"
    assert records[0].email == "Juan.Perez@Example.com "
    assert records[0].registered_at == datetime(2024, 1, 15, 10, 30)
    assert records[2].email is None


def test_csv_extractor_missing_file(tmp_path: Path) -> None:
    """A missing seed file raises SourceUnavailable."""
    extractor = CSVExtractor(str(tmp_path / "nope.csv"))

    with pytest.raises(SourceUnavailable):
        list(extractor.stream())
    assert extractor.validate_source()


def test_csv_extractor_missing_columns(tmp_path: Path) -> None:
    """A header without the customer columns is rejected."""
    path = tmp_path / "bad.csv"
    path.write_text("name,email\nana,ana@example.com\n")

    with pytest.raises(SourceReadError, match="missing columns"):
        list(CSVExtractor(str(path)).stream())


def test_csv_extractor_ragged_row(tmp_path: Path) -> None:
    """A row with more fields than the header fails with its row number."""
    path = tmp_path / "ragged.csv"
    path.write_text(
        "id,name,last_name,email,country,registered_at\n"
        "7,ana,lopez,ana@example.com,mexico,2024-01-01\n"
        "8,bob,smith,bob@example.com,usa,2024-01-02,extra\n"
    )

    records = CSVExtractor(str(path)).stream()
    first = next(records)

    assert first.id == 7
    with pytest.raises(SourceReadError) as excinfo:
        next(records)
    assert excinfo.value.row_number == 2


def test_csv_extractor_short_row(tmp_path: Path) -> None:
    """A row with fewer fields than the header is rejected."""
    path = tmp_path / "short.csv"
    path.write_text("id,name,last_name,email,country,registered_at\n1,ana,lopez\n")

    with pytest.raises(SourceReadError, match="fewer fields"):
        list(CSVExtractor(str(path)).stream())


def test_csv_extractor_parses_signed_integer_ids(tmp_path: Path) -> None:
    """Integer ids read as text become ints, sign included; other text stays text."""
    path = tmp_path / "ids.csv"
    path.write_text(
        "id,name,last_name,email,country,registered_at\n"
        "-5,ana,lopez,ana@example.com,mexico,2024-01-01\n"
        "0,bob,smith,bob@example.com,usa,2024-01-02\n"
        "+7,carla,ruiz,carla@example.com,chile,2024-01-03\n"
        "²,dan,gray,dan@example.com,peru,2024-01-04\n"
        "C-9,eva,diaz,eva@example.com,peru,2024-01-05\n",
        encoding="utf-8",
    )

    records = list(CSVExtractor(str(path)).stream())

    assert [r.id for r in records] == [-5, 0, 7, "²", "C-9"]
