"""Migration execution and status endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ...config import MigrationSettings
from ...errors import ConfigurationError, StoreConnectionError
from ...models.run import MigrationStatus
from ...orchestrator import MigrationOrchestrator
from ...services.status_store import MigrationStatusStore
from ..dependencies import (
    OrchestratorFactory,
    ReaderFactory,
    get_orchestrator_factory,
    get_reader_factory,
    get_settings,
    get_status_store,
)
from ..models import (
    ConnectionCheckResponse,
    MigrationStartRequest,
    MigrationStartResponse,
    MigrationStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/start", status_code=202, response_model=MigrationStartResponse)
async def start_migration(
    request: MigrationStartRequest,
    background_tasks: BackgroundTasks,
    settings: MigrationSettings = Depends(get_settings),
    status_store: MigrationStatusStore = Depends(get_status_store),
    orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """Start a migration run in the background."""
    if status_store.is_running():
        raise HTTPException(status_code=409, detail="Migration is already running")

    try:
        settings.ensure_valid(require_storage=not request.skip_images)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    orchestrator = orchestrator_factory(
        settings,
        dry_run=request.dry_run,
        skip_images=request.skip_images,
    )
    migration_id = orchestrator.result.id

    status_store.mark_running(migration_id, request.dry_run, request.skip_images)
    background_tasks.add_task(run_migration_task, orchestrator, status_store)

    return MigrationStartResponse(
        migration_id=migration_id,
        status=MigrationStatus.RUNNING.value,
        dry_run=request.dry_run,
        skip_images=request.skip_images,
    )


@router.get("/status", response_model=MigrationStatusResponse)
async def get_status(status_store: MigrationStatusStore = Depends(get_status_store)):
    """Status of the latest migration, or ``idle`` when none was started."""
    document = status_store.read()
    if not document:
        return MigrationStatusResponse(status="idle")
    return MigrationStatusResponse(**document)


@router.get("/test-source", response_model=ConnectionCheckResponse)
def test_source(
    settings: MigrationSettings = Depends(get_settings),
    reader_factory: ReaderFactory = Depends(get_reader_factory),
):
    """Check the legacy store connection."""
    missing = settings.missing_source_settings()
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required environment variables: {', '.join(missing)}",
        )

    reader = reader_factory(settings)
    try:
        reader.ping()
    except StoreConnectionError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        reader.close()

    return ConnectionCheckResponse(
        status="connected",
        store="source",
        host=settings.mysql_host,
        database=settings.mysql_database,
    )


def run_migration_task(orchestrator: MigrationOrchestrator, status_store: MigrationStatusStore):
    """Run the migration and record its outcome in the status file."""
    try:
        result = orchestrator.run_migration()
    except Exception as e:
        logger.error(f"Background migration {orchestrator.result.id} failed: {e}")
        status_store.mark_finished(
            MigrationStatus.FAILED,
            result=orchestrator.result.to_dict(),
            error=str(e),
        )
        return

    status_store.mark_finished(result.status, result=result.to_dict())
