"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from enum import Enum
from datetime import datetime

MIGRATED_STATUS = "MIGRATED"

RecordId = Union[int, str]


class SkipReason(str, Enum):
    """Why the transformer produced no output for a record."""
    MISSING_CONTACT = "missing_contact"
    DUPLICATE_CONTACT = "duplicate_contact"


@dataclass
class ValidationError:
    """A validation error on a record."""
    field: str
    message: str
    error_type: str = "validation"
    value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "field": self.field,
            "message": self.message,
            "error_type": self.error_type,
            "value": self.value,
        }


@dataclass(frozen=True)
class SourceRecord:
    """A customer row read from the source store."""
    id: RecordId
    name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    registered_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "last_name": self.last_name,
            "email": self.email,
            "country": self.country,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }


@dataclass
class TargetRecord:
    """A customer document destined for the target store."""
    original_source_id: RecordId
    name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    country: Optional[str] = None
    registered_at: Optional[datetime] = None
    migration_status: str = MIGRATED_STATUS
    id: Optional[str] = None  # Assigned by the target store on insert

    def to_document(self) -> Dict[str, Any]:
        """Build the document stored in the target collection."""
        return {
            "original_source_id": self.original_source_id,
            "name": self.name,
            "last_name": self.last_name,
            "email": self.email,
            "country": self.country,
            "registered_at": self.registered_at,
            "migration_status": self.migration_status,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.to_document()
        data["id"] = self.id
        data["registered_at"] = self.registered_at.isoformat() if self.registered_at else None
        return data


@dataclass
class TransformResult:
    """Output of transforming one source record: a record or a skip reason."""
    source_id: RecordId
    record: Optional[TargetRecord] = None
    skip_reason: Optional[SkipReason] = None

    @property
    def skipped(self) -> bool:
        return self.record is None


@dataclass
class WriteOutcome:
    """Summary of writing one chunk to the target store."""
    received: int = 0
    inserted: int = 0
    duplicates: int = 0
    errors: int = 0
    inserted_ids: List[str] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)
    high_error_rate: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def error_rate(self) -> float:
        """Percentage of received records that failed validation."""
        if self.received == 0:
            return 0.0
        return self.errors / self.received * 100

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "received": self.received,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "error_rate": self.error_rate,
            "high_error_rate": self.high_error_rate,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
