"""Relational source extractor backed by SQLAlchemy."""

import logging
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseExtractor
from ..errors import SourceReadError, SourceUnavailable
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class SQLExtractor(BaseExtractor):
    """
    Streams customer rows from a relational database.

    Rows are read through a server-side cursor where the driver supports
    one, in fetch_size batches, so only a bounded number of rows is held
    in memory regardless of table size.
    """

    def __init__(
        self,
        engine: Engine,
        table: str = "customers",
        fetch_size: int = 100
    ):
        """
        Initialize the SQL extractor.

        Args:
            engine: SQLAlchemy engine for the source database
            table: Table holding the customer rows
            fetch_size: Rows fetched from the cursor per round trip
        """
        super().__init__(name=f"{engine.url.render_as_string(hide_password=True)}/{table}")
        if not table.replace("_", "").replace(".", "").isalnum():
            raise ValueError(f"Invalid table name: {table}")
        self.engine = engine
        self.table = table
        self.fetch_size = fetch_size

    @classmethod
    def from_url(cls, url: str, table: str = "customers", fetch_size: int = 100) -> "SQLExtractor":
        """Create an extractor from a database URL."""
        return cls(create_engine(url), table=table, fetch_size=fetch_size)

    def build_query(self) -> str:
        return (
            "SELECT id, name, last_name, email, country, registered_at "
            f"FROM {self.table} "
            "ORDER BY id ASC"
        )

    def stream(self) -> Iterator[SourceRecord]:
        """Stream customer rows ordered by id."""
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as e:
            raise SourceUnavailable(f"Cannot connect to source {self.name}: {e}") from e

        row_number = 0
        try:
            result = connection.execution_options(
                stream_results=True,
                yield_per=self.fetch_size,
            ).execute(text(self.build_query()))
            logger.info(f"Opened cursor on {self.name}")

            for row in result.mappings():
                row_number += 1
                yield self.create_record(row, row_number)

        except SQLAlchemyError as e:
            raise SourceReadError(
                f"Failed reading {self.name} after {row_number} rows: {e}",
                row_number=row_number,
            ) from e

        finally:
            connection.close()
            logger.debug(f"Closed cursor on {self.name} after {row_number} rows")

    def validate_source(self) -> List[str]:
        """Check that the source table can be queried."""
        errors = []
        try:
            with self.engine.connect() as connection:
                connection.execute(text(f"SELECT COUNT(*) FROM {self.table}"))
        except SQLAlchemyError as e:
            errors.append(f"Source {self.name} is not readable: {e}")
        return errors

    def count(self) -> Optional[int]:
        """Number of rows in the source table, or None if it cannot be counted."""
        try:
            with self.engine.connect() as connection:
                return connection.execute(text(f"SELECT COUNT(*) FROM {self.table}")).scalar_one()
        except SQLAlchemyError as e:
            logger.warning(f"Could not count rows in {self.name}: {e}")
            return None
