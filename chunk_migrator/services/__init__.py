"""Service layer for the migration application."""

from .duplicate_filter import DuplicateFilter
from .transformer import CustomerTransformer, normalize_email, title_case
from .validator import RecordValidator

__all__ = [
    "DuplicateFilter",
    "CustomerTransformer",
    "RecordValidator",
    "normalize_email",
    "title_case",
]
