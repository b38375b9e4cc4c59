"""Migration execution models."""

import json
import os
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from ..errors import ConfigurationError

DEFAULT_CHUNK_SIZE = 10
MIGRATION_NAME = "Customer Migration (SQL -> MongoDB)"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class RunState(str, Enum):
    """Lifecycle of a migration run."""
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LookupPolicy(str, Enum):
    """How the duplicate filter treats a failed lookup."""
    FAIL_OPEN = "fail_open"  # Treat as "not a duplicate"
    FAIL_CLOSED = "fail_closed"  # Treat as "duplicate" and skip


@dataclass
class RunStatistics:
    """Counters accumulated across a migration run."""
    records_read: int = 0
    records_written: int = 0
    records_skipped: int = 0
    records_rejected: int = 0
    duplicates_suppressed: int = 0
    commit_count: int = 0
    rollback_count: int = 0
    lookup_failures: int = 0

    @property
    def success_rate(self) -> float:
        """Percentage of read records that were written."""
        if self.records_read == 0:
            return 0.0
        return self.records_written / self.records_read * 100

    def merge(self, other: "RunStatistics") -> None:
        """Add another set of counters into this one."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def copy(self) -> "RunStatistics":
        return RunStatistics(**{f.name: getattr(self, f.name) for f in fields(self)})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        data["success_rate"] = round(self.success_rate, 2)
        return data


@dataclass
class MigrationRun:
    """A single execution of the migration loop."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = MIGRATION_NAME
    state: RunState = RunState.NOT_STARTED
    job_parameters: Dict[str, Any] = field(default_factory=dict)
    statistics: RunStatistics = field(default_factory=RunStatistics)

    # Timing
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Failure cause
    error: Optional[str] = None
    error_type: Optional[str] = None

    # Most recent committed chunk summaries
    chunks: Deque[Dict[str, Any]] = field(default_factory=lambda: deque(maxlen=50))

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def mark_running(self) -> None:
        with self._lock:
            self.state = RunState.RUNNING
            self.started_at = utcnow()

    def mark_completed(self) -> None:
        with self._lock:
            self.state = RunState.COMPLETED
            self.completed_at = utcnow()

    def mark_failed(self, error: BaseException) -> None:
        with self._lock:
            self.state = RunState.FAILED
            self.completed_at = utcnow()
            self.error = str(error)
            self.error_type = type(error).__name__

    def commit_chunk(self, delta: RunStatistics, chunk_summary: Dict[str, Any]) -> None:
        """Fold a successfully written chunk's counters into the run."""
        with self._lock:
            self.statistics.merge(delta)
            self.statistics.commit_count += 1
            self.chunks.append(chunk_summary)

    def record_rollback(self) -> None:
        with self._lock:
            self.statistics.rollback_count += 1

    def snapshot_statistics(self) -> RunStatistics:
        with self._lock:
            return self.statistics.copy()

    def to_dict(self) -> Dict[str, Any]:
        """Status representation of the run."""
        with self._lock:
            return {
                "run_id": self.id,
                "name": self.name,
                "state": self.state.value,
                "completed": self.state == RunState.COMPLETED,
                "job_parameters": dict(self.job_parameters),
                "statistics": self.statistics.to_dict(),
                "created_at": self.created_at.isoformat(),
                "started_at": self.started_at.isoformat() if self.started_at else None,
                "completed_at": self.completed_at.isoformat() if self.completed_at else None,
                "duration_seconds": self.duration_seconds,
                "error": self.error,
                "error_type": self.error_type,
                "recent_chunks": list(self.chunks),
            }

    def to_summary(self) -> Dict[str, Any]:
        """Executive summary of the run."""
        with self._lock:
            stats = self.statistics.copy()
            state = self.state
            duration = self.duration_seconds
            return {
                "migration_name": self.name,
                "run_id": self.id,
                "final_status": state.value,
                "completed": state == RunState.COMPLETED,
                "statistics": {
                    "records_read": stats.records_read,
                    "records_written": stats.records_written,
                    "records_skipped": stats.records_skipped,
                    "records_rejected": stats.records_rejected,
                    "duplicates_suppressed": stats.duplicates_suppressed,
                    "errors_encountered": stats.records_rejected + stats.rollback_count,
                    "commit_count": stats.commit_count,
                    "rollback_count": stats.rollback_count,
                    "success_rate": round(stats.success_rate, 2),
                },
                "process_start_time": self.started_at.isoformat() if self.started_at else None,
                "process_end_time": self.completed_at.isoformat() if self.completed_at else None,
                "duration_seconds": duration,
                "duration_minutes": duration / 60.0 if duration is not None else None,
                "error": self.error,
                "recommendations": _recommendation(state, stats),
            }


def _recommendation(state: RunState, stats: RunStatistics) -> str:
    if state == RunState.FAILED:
        return (
            f"Migration aborted after {stats.records_written} committed records. "
            "Check server logs and database connectivity, then restart the migration; "
            "already migrated records are skipped."
        )
    if state == RunState.RUNNING:
        return "Migration in progress. Check the status endpoint for live statistics."
    if state == RunState.NOT_STARTED:
        return "Migration has not started yet."
    if stats.records_rejected:
        return (
            f"Migration completed with {stats.records_rejected} rejected records. "
            "Review source rows with missing required fields."
        )
    return "Migration completed successfully. Consider running data validation checks."


@dataclass
class RunHandle:
    """Handle returned when a run is started."""
    run_id: str
    state: RunState
    job_parameters: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    thread: Optional[threading.Thread] = field(default=None, repr=False, compare=False)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a background run finishes. Returns False on timeout."""
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "job_parameters": dict(self.job_parameters),
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


@dataclass
class MigrationConfig:
    """Configuration for a migration."""
    name: str = MIGRATION_NAME

    # Source: a SQL database, or a seed CSV file when set
    source_url: str = "sqlite:///customers.db"
    source_table: str = "customers"
    seed_csv: Optional[str] = None

    # Target
    target_url: str = "mongodb://localhost:27017"
    target_database: str = "migration"
    target_collection: str = "customers"

    # Execution options
    chunk_size: int = DEFAULT_CHUNK_SIZE
    fetch_size: int = 100
    transform_workers: int = 1
    lookup_policy: LookupPolicy = LookupPolicy.FAIL_OPEN
    write_timeout_seconds: Optional[float] = None
    error_rate_threshold: float = 10.0
    execution_user: str = "batch-system"

    # Output
    reports_dir: Optional[str] = None

    def validate(self) -> List[str]:
        """
        Validate the configuration.

        Returns:
            List of validation error messages
        """
        errors = []

        if self.chunk_size < 1:
            errors.append("chunk_size must be at least 1")
        if self.fetch_size < 1:
            errors.append("fetch_size must be at least 1")
        if self.transform_workers < 1:
            errors.append("transform_workers must be at least 1")
        if not self.seed_csv and not self.source_url:
            errors.append("Either source_url or seed_csv is required")
        if not self.target_url:
            errors.append("target_url is required")
        if not self.target_collection:
            errors.append("target_collection is required")
        if self.write_timeout_seconds is not None and self.write_timeout_seconds <= 0:
            errors.append("write_timeout_seconds must be positive")
        if not 0 <= self.error_rate_threshold <= 100:
            errors.append("error_rate_threshold must be between 0 and 100")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "source_url": self.source_url,
            "source_table": self.source_table,
            "seed_csv": self.seed_csv,
            "target_url": self.target_url,
            "target_database": self.target_database,
            "target_collection": self.target_collection,
            "chunk_size": self.chunk_size,
            "fetch_size": self.fetch_size,
            "transform_workers": self.transform_workers,
            "lookup_policy": self.lookup_policy.value,
            "write_timeout_seconds": self.write_timeout_seconds,
            "error_rate_threshold": self.error_rate_threshold,
            "execution_user": self.execution_user,
            "reports_dir": self.reports_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        defaults = cls()
        try:
            timeout = data.get("write_timeout_seconds")
            return cls(
                name=data.get("name", defaults.name),
                source_url=data.get("source_url", defaults.source_url),
                source_table=data.get("source_table", defaults.source_table),
                seed_csv=data.get("seed_csv"),
                target_url=data.get("target_url", defaults.target_url),
                target_database=data.get("target_database", defaults.target_database),
                target_collection=data.get("target_collection", defaults.target_collection),
                chunk_size=int(data.get("chunk_size", defaults.chunk_size)),
                fetch_size=int(data.get("fetch_size", defaults.fetch_size)),
                transform_workers=int(data.get("transform_workers", defaults.transform_workers)),
                lookup_policy=LookupPolicy(data.get("lookup_policy", defaults.lookup_policy.value)),
                write_timeout_seconds=float(timeout) if timeout not in (None, "") else None,
                error_rate_threshold=float(
                    data.get("error_rate_threshold", defaults.error_rate_threshold)
                ),
                execution_user=data.get("execution_user", defaults.execution_user),
                reports_dir=data.get("reports_dir"),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid migration configuration: {e}") from e

    @classmethod
    def from_json_file(cls, path: str) -> "MigrationConfig":
        """Load configuration from a JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load configuration from {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "MigrationConfig":
        """Create from MIGRATION_* environment variables."""
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            key = f"MIGRATION_{name.upper()}"
            if key in environ:
                data[name] = environ[key]
        return cls.from_dict(data)
