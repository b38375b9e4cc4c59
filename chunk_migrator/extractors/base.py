"""Base extractor interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterator, List, Mapping, Optional
import logging

from dateutil import parser as date_parser

from ..errors import SourceReadError
from ..models.record import RecordId, SourceRecord

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = ("id", "name", "last_name", "email", "country", "registered_at")


class BaseExtractor(ABC):
    """
    Base class for record readers.

    Extractors stream SourceRecord objects from a source store one at a
    time. Each call to stream() opens a fresh cursor, so a run can always
    restart reading from the beginning.
    """

    def __init__(self, name: str):
        """
        Initialize the extractor.

        Args:
            name: Human-readable name of the source, used in logs
        """
        self.name = name

    @abstractmethod
    def stream(self) -> Iterator[SourceRecord]:
        """
        Stream records from the source, ordered by identifier.

        Yields:
            SourceRecord objects

        Raises:
            SourceUnavailable: If the source cannot be opened
            SourceReadError: If a row cannot be read or mapped
        """
        pass

    def validate_source(self) -> List[str]:
        """
        Validate that the source is reachable.

        Returns:
            List of validation error messages
        """
        return []

    def count(self) -> Optional[int]:
        """Number of records in the source, or None if unknown."""
        return None

    def create_record(self, row: Mapping[str, Any], row_number: int) -> SourceRecord:
        """
        Map a source row to a SourceRecord.

        Args:
            row: Column name to value mapping
            row_number: 1-based position of the row in the stream

        Returns:
            SourceRecord object
        """
        missing = [c for c in SOURCE_COLUMNS if c not in row]
        if missing:
            raise SourceReadError(
                f"Row {row_number} from {self.name} is missing columns: {', '.join(missing)}",
                row_number=row_number,
            )

        return SourceRecord(
            id=self._coerce_id(row["id"], row_number),
            name=self._coerce_text(row["name"]),
            last_name=self._coerce_text(row["last_name"]),
            email=self._coerce_text(row["email"]),
            country=self._coerce_text(row["country"]),
            registered_at=self._coerce_timestamp(row["registered_at"], row_number),
        )

    def _coerce_id(self, value: Any, row_number: int) -> RecordId:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise SourceReadError(f"Row {row_number} from {self.name} has no id", row_number)
        if isinstance(value, bool):
            raise SourceReadError(f"Row {row_number} has a boolean id", row_number)
        if isinstance(value, int):
            return value
        text = str(value).strip()
        # Integer strings (signed too) become ints so ids compare the same as in the source
        try:
            return int(text)
        except ValueError:
            return text

    def _coerce_text(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    def _coerce_timestamp(self, value: Any, row_number: int) -> Optional[datetime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        try:
            return date_parser.parse(str(value))
        except (ValueError, OverflowError) as e:
            raise SourceReadError(
                f"Row {row_number} from {self.name} has an invalid registered_at: {value!r}",
                row_number=row_number,
            ) from e
