"""Data models for the migration application."""

from .migration import (
    LookupPolicy,
    MigrationConfig,
    MigrationRun,
    RunHandle,
    RunState,
    RunStatistics,
)
from .record import (
    SkipReason,
    SourceRecord,
    TargetRecord,
    TransformResult,
    ValidationError,
    WriteOutcome,
)

__all__ = [
    "LookupPolicy",
    "MigrationConfig",
    "MigrationRun",
    "RunHandle",
    "RunState",
    "RunStatistics",
    "SkipReason",
    "SourceRecord",
    "TargetRecord",
    "TransformResult",
    "ValidationError",
    "WriteOutcome",
]
