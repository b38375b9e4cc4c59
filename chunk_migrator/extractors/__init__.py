"""Record readers for the migration source."""

from .base import BaseExtractor
from .csv_extractor import CSVExtractor
from .sql_extractor import SQLExtractor

__all__ = [
    "BaseExtractor",
    "CSVExtractor",
    "SQLExtractor",
]
