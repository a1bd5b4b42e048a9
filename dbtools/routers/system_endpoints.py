import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from dbtools.config import load_settings
from dbtools.core.migrations.migration_models import MigrationResult
from dbtools.services.database.factory import create_gateway
from dbtools.services.database.migration_runner import MigrationRunner

logger = logging.getLogger("dbtools.api")

router = APIRouter(prefix="/api/system", tags=["System"])


class MigrationRunResponse(BaseModel):
    status: str
    message: str
    executed_scripts: List[str] = []


class MigrationStatusResponse(BaseModel):
    version: str
    description: Optional[str] = None
    scripts: List[str]
    executed: bool
    executed_at: Optional[str] = None


def get_migration_runner() -> MigrationRunner:
    settings = load_settings()
    return MigrationRunner(create_gateway(settings.connection_string), settings.migrations_dir)


def _to_response(result: MigrationResult) -> MigrationRunResponse:
    if not result.success:
        logger.error(f"Migration request failed: {result.message}")
        raise HTTPException(status_code=500, detail=result.message)
    return MigrationRunResponse(
        status="success",
        message=result.message,
        executed_scripts=result.executed_scripts,
    )


@router.get("/db/version")
async def get_db_version(runner: MigrationRunner = Depends(get_migration_runner)):
    """
    Latest executed migration version, null when nothing has run yet.
    """
    latest = await runner.gateway.get_latest_version()
    if not latest:
        raise HTTPException(status_code=503, detail=latest.error.message)
    return {"version": latest.value}


@router.get("/migrations", response_model=List[MigrationStatusResponse])
async def list_migrations(runner: MigrationRunner = Depends(get_migration_runner)):
    entries = await runner.list_migrations()
    return [MigrationStatusResponse(**entry.to_dict()) for entry in entries]


@router.post("/setup", response_model=MigrationRunResponse)
async def setup_database(runner: MigrationRunner = Depends(get_migration_runner)):
    """
    Creates the database if needed, runs the Initial migration, then
    updates to the latest version.
    """
    setup = await runner.setup_database()
    if not setup.success:
        return _to_response(setup)

    update = await runner.update_to_latest()
    update.executed_scripts = setup.executed_scripts + update.executed_scripts
    return _to_response(update)


@router.post("/migrate", response_model=MigrationRunResponse)
async def trigger_migrations(
    version: Optional[str] = None,
    runner: MigrationRunner = Depends(get_migration_runner),
):
    """
    Runs pending migrations up to ``version``, or to the latest one.
    Useful for deploy hooks.
    """
    if version:
        return _to_response(await runner.update_to_version(version))
    return _to_response(await runner.update_to_latest())
