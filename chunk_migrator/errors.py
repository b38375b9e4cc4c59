"""Exception taxonomy for the migration engine.

Run-level failures (source, write) abort the current run and are recorded as
its failure cause. Per-record problems never leave the chunk they occur in;
they are counted instead of raised.
"""

from typing import Any, Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConfigurationError(MigrationError):
    """Invalid or incomplete migration configuration."""


class SourceUnavailable(MigrationError):
    """The source store could not be opened."""


class SourceReadError(MigrationError):
    """A source row could not be read or mapped. Fatal for the run."""

    def __init__(self, message: str, row_number: Optional[int] = None):
        super().__init__(message)
        self.row_number = row_number


class AlreadyRunning(MigrationError):
    """A migration run is already active in this process."""

    def __init__(self, active_run_id: str):
        super().__init__(f"Migration run {active_run_id} is already running")
        self.active_run_id = active_run_id


class RunNotFound(MigrationError, KeyError):
    """No run is registered under the requested id."""

    def __init__(self, run_id: str):
        super().__init__(f"Migration run not found: {run_id}")
        self.run_id = run_id

    def __str__(self) -> str:
        return self.args[0]


class WriteFailed(MigrationError):
    """The bulk write of a chunk failed. Fatal for the run."""

    def __init__(self, message: str, chunk_size: int = 0):
        super().__init__(message)
        self.chunk_size = chunk_size


class LookupFailed(MigrationError):
    """A duplicate lookup against the target store failed."""

    def __init__(self, message: str, key: Any = None):
        super().__init__(message)
        self.key = key


class ValidationRejected(MigrationError):
    """A record failed required-field validation before insertion."""


class DuplicateSkipped(MigrationError):
    """A record was excluded because it already exists in the target."""
