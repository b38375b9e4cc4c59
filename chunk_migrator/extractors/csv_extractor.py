"""CSV seed file extractor."""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .base import BaseExtractor, SOURCE_COLUMNS
from ..errors import SourceReadError, SourceUnavailable
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class CSVExtractor(BaseExtractor):
    """
    Extractor for customer seed files.

    Reads a delimited file with a header row. The header must name the
    customer columns; the id column is optional, and rows without one are
    identified by their 1-based row number. Rows are read lazily and
    emitted in file order.
    """

    def __init__(
        self,
        file_path: str,
        column_mapping: Optional[Dict[str, str]] = None,
        encoding: str = "utf-8",
        delimiter: str = ","
    ):
        """
        Initialize the CSV extractor.

        Args:
            file_path: Path to the seed file
            column_mapping: Optional mapping of file headers to column names
                (e.g. {"lastName": "last_name"})
            encoding: File encoding
            delimiter: CSV delimiter character
        """
        super().__init__(name=file_path)
        self.file_path = Path(file_path)
        self.column_mapping = column_mapping or {"lastName": "last_name"}
        self.encoding = encoding
        self.delimiter = delimiter

    def stream(self) -> Iterator[SourceRecord]:
        """Stream customer rows from the seed file."""
        try:
            f = open(self.file_path, newline="", encoding=self.encoding)
        except OSError as e:
            raise SourceUnavailable(f"Cannot open seed file {self.file_path}: {e}") from e

        with f:
            reader = csv.DictReader(f, delimiter=self.delimiter, skipinitialspace=True)
            headers = [self._map_header(h) for h in (reader.fieldnames or [])]
            missing = [c for c in SOURCE_COLUMNS if c != "id" and c not in headers]
            if missing:
                raise SourceReadError(
                    f"Seed file {self.file_path} is missing columns: {', '.join(missing)}"
                )
            logger.info(f"Processing seed file: {self.file_path}")

            row_number = 0
            try:
                for raw in reader:
                    row_number += 1
                    yield self.create_record(self._normalize_row(raw, row_number), row_number)
            except csv.Error as e:
                raise SourceReadError(
                    f"Malformed CSV at row {row_number} of {self.file_path}: {e}",
                    row_number=row_number,
                ) from e

    def validate_source(self) -> List[str]:
        errors = []
        if not self.file_path.is_file():
            errors.append(f"Seed file not found: {self.file_path}")
        return errors

    def _map_header(self, header: str) -> str:
        header = header.strip()
        return self.column_mapping.get(header, header)

    def _normalize_row(self, raw: Dict[Optional[str], object], row_number: int) -> Dict[str, object]:
        """Rename headers, reject ragged rows and fill in the id."""
        if None in raw:
            raise SourceReadError(
                f"Row {row_number} of {self.file_path} has more fields than the header",
                row_number=row_number,
            )
        row = {self._map_header(k): v for k, v in raw.items() if k is not None}
        if any(v is None for v in row.values()):
            raise SourceReadError(
                f"Row {row_number} of {self.file_path} has fewer fields than the header",
                row_number=row_number,
            )
        row = {k: (None if v == "" else v) for k, v in row.items()}
        if row.get("id") is None:
            row["id"] = row_number
        return row
