"""FastAPI application entry point."""

from typing import Optional

from fastapi import FastAPI

from .routes import migrations
from ..orchestrator import MigrationOrchestrator


def create_app(orchestrator: Optional[MigrationOrchestrator] = None) -> FastAPI:
    """
    Create the control surface application.

    Args:
        orchestrator: Orchestrator to serve; built from MIGRATION_* environment
            variables on the first request when omitted
    """
    app = FastAPI(
        title="Customer Migration API",
        description="Start and monitor chunked customer migrations from SQL to MongoDB",
        version="1.0.0",
    )
    app.state.orchestrator = orchestrator

    app.include_router(migrations.router, prefix="/api/v1/batch", tags=["batch-migration"])

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
