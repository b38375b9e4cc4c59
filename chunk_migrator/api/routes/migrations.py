"""Migration run control and reporting endpoints."""

import logging
import threading

from fastapi import APIRouter, Depends, HTTPException, Request

from ..models import (
    ErrorResponse,
    ExecutiveSummary,
    JobStatusResponse,
    MigrationStartResponse,
    RunningStatusResponse,
)
from ...errors import AlreadyRunning, ConfigurationError, MigrationError, RunNotFound
from ...models.migration import MigrationConfig
from ...orchestrator import MigrationOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

JOB_NAME = "customerMigrationJob"

_build_lock = threading.Lock()


def get_orchestrator(request: Request) -> MigrationOrchestrator:
    """Orchestrator stored on the app, built from the environment on first use."""
    state = request.app.state
    with _build_lock:
        if getattr(state, "orchestrator", None) is None:
            try:
                state.orchestrator = build_orchestrator(MigrationConfig.from_env())
            except ConfigurationError as e:
                logger.error(f"Cannot build migration orchestrator: {e}")
                raise _error(
                    500,
                    "BATCH_002",
                    "Migration service is not configured",
                    str(e),
                    "Check the MIGRATION_* environment variables",
                )
    return state.orchestrator


def _error(status_code: int, error_code: str, message: str, details: str, suggestions: str) -> HTTPException:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        suggestions=suggestions,
    )
    return HTTPException(status_code=status_code, detail=body.model_dump(mode="json"))


@router.post(
    "/migrate/customers",
    response_model=MigrationStartResponse,
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def start_customer_migration(orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Start a customer migration run in the background."""
    logger.info("=== REQUEST: start customer migration ===")
    try:
        handle = orchestrator.start(background=True)
    except AlreadyRunning as e:
        raise _error(
            409,
            "BATCH_001",
            "Migration job is already running",
            str(e),
            "Wait for the current migration to complete or check its status",
        )
    except MigrationError as e:
        logger.error(f"Failed to start customer migration: {e}")
        raise _error(
            500,
            "BATCH_002",
            "Failed to start customer migration",
            str(e),
            "Check server logs and database connectivity",
        )

    return MigrationStartResponse(
        run_id=handle.run_id,
        job_name=JOB_NAME,
        state=handle.state.value,
        message="Customer migration job started successfully",
        start_time=handle.started_at,
        job_parameters=handle.job_parameters,
    )


@router.get("/status/running", response_model=RunningStatusResponse)
def check_running_jobs(orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Check whether a migration run is in progress."""
    active_run_id = orchestrator.active_run_id
    is_running = active_run_id is not None
    return RunningStatusResponse(
        message=(
            "There are migration jobs currently running"
            if is_running else "No migration jobs are currently running"
        ),
        data={
            "is_running": is_running,
            "job_type": "customer-migration",
            "active_run_id": active_run_id,
        },
    )


@router.get(
    "/status/{run_id}",
    response_model=JobStatusResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_job_status(run_id: str, orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Get state and statistics of a migration run."""
    try:
        return orchestrator.status(run_id)
    except RunNotFound as e:
        raise _error(404, "BATCH_003", "Migration run not found", str(e), "Verify the run id is valid")


@router.get(
    "/summary/{run_id}",
    response_model=ExecutiveSummary,
    responses={404: {"model": ErrorResponse}},
)
def get_executive_summary(run_id: str, orchestrator: MigrationOrchestrator = Depends(get_orchestrator)):
    """Get the executive summary of a migration run."""
    try:
        return orchestrator.summary(run_id)
    except RunNotFound as e:
        raise _error(
            404,
            "BATCH_004",
            "Migration run not found",
            str(e),
            "Verify the run id and try again",
        )
