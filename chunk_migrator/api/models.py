"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RunStateEnum(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""
    error_code: str
    message: str
    details: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)
    suggestions: Optional[str] = None


class MigrationStartResponse(BaseModel):
    run_id: str
    job_name: str
    state: RunStateEnum
    message: str
    start_time: Optional[datetime] = None
    job_parameters: Dict[str, Any] = Field(default_factory=dict)


class ProcessingStatistics(BaseModel):
    records_read: int = 0
    records_written: int = 0
    records_skipped: int = 0
    records_rejected: int = 0
    duplicates_suppressed: int = 0
    commit_count: int = 0
    rollback_count: int = 0
    lookup_failures: int = 0
    success_rate: float = 0.0


class ChunkSummary(BaseModel):
    chunk: int
    read: int
    received: int
    inserted: int
    duplicates: int
    errors: int
    error_rate: float
    high_error_rate: bool = False
    duration_seconds: Optional[float] = None


class JobStatusResponse(BaseModel):
    run_id: str
    name: str
    state: RunStateEnum
    completed: bool
    job_parameters: Dict[str, Any] = Field(default_factory=dict)
    statistics: ProcessingStatistics
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    recent_chunks: List[ChunkSummary] = Field(default_factory=list)


class SummaryStatistics(BaseModel):
    records_read: int = 0
    records_written: int = 0
    records_skipped: int = 0
    records_rejected: int = 0
    duplicates_suppressed: int = 0
    errors_encountered: int = 0
    commit_count: int = 0
    rollback_count: int = 0
    success_rate: float = 0.0


class ExecutiveSummary(BaseModel):
    migration_name: str
    run_id: str
    final_status: RunStateEnum
    completed: bool
    statistics: SummaryStatistics
    process_start_time: Optional[datetime] = None
    process_end_time: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    duration_minutes: Optional[float] = None
    error: Optional[str] = None
    recommendations: str


class RunningStatusResponse(BaseModel):
    success: bool = True
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_now)
