# stockroom/routers/backups/backup_router.py

import logging
from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.config import BACKUP_RETENTION_DAYS
from stockroom.core.db import Database, get_db, unit_of_work
from stockroom.constants.activity_codes import ActivityCode
from stockroom.schemas.backups.backup_schemas import (
    BackupCreate,
    BackupRestore,
    BackupCleanup,
    BackupOut,
    BackupListData,
    BackupCleanupResult,
)
from stockroom.services.backups.backup_service import BackupService, restore_database
from stockroom.utils.activity_helpers import emit_activity, actor_context
from stockroom.utils.check_roles import require_admin
from stockroom.utils.response import APIResponse, success_response

router = APIRouter(prefix="/backups", tags=["Backups"])
logger = logging.getLogger(__name__)


def get_backup_service(request: Request) -> BackupService:
    return request.app.state.backup_service


async def _record(db: AsyncSession, admin, code: ActivityCode, request: Request, **context):
    actor = actor_context(admin)
    async with unit_of_work(db):
        await emit_activity(
            db=db,
            user_id=admin.id,
            username=actor["actor_name"],
            code=code,
            table_name="backups",
            request=request,
            **context,
            **actor,
        )


@router.post("/", response_model=APIResponse[BackupOut], status_code=201)
async def create_backup_api(
    request: Request,
    payload: BackupCreate | None = None,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
    service: BackupService = Depends(get_backup_service),
):
    backup = await run_in_threadpool(service.create_backup, payload.reason if payload else None)
    await _record(db, admin, ActivityCode.CREATE_BACKUP, request, filename=backup.filename)
    return success_response("Backup created successfully", backup)


@router.get("/", response_model=APIResponse[BackupListData])
async def list_backups_api(
    admin=Depends(require_admin),
    service: BackupService = Depends(get_backup_service),
):
    backups = await run_in_threadpool(service.list_backups)
    return success_response(
        "Backups fetched successfully",
        BackupListData(total=len(backups), items=backups),
    )


@router.post("/restore", response_model=APIResponse[BackupOut])
async def restore_backup_api(
    payload: BackupRestore,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
    service: BackupService = Depends(get_backup_service),
):
    logger.warning("Restore requested", extra={"backup_file": payload.filename, "user_id": admin.id})

    actor = actor_context(admin)
    # Release this request's connection before the file is replaced
    await db.close()

    database: Database = request.app.state.db
    safety = await restore_database(database, service, payload.filename)

    async with database.session() as session:
        async with unit_of_work(session):
            await emit_activity(
                db=session,
                # The restored file may predate this user
                user_id=None,
                username=actor["actor_name"],
                code=ActivityCode.RESTORE_BACKUP,
                table_name="backups",
                request=request,
                filename=payload.filename,
                **actor,
            )

    return success_response("Backup restored successfully", safety)


@router.post("/cleanup", response_model=APIResponse[BackupCleanupResult])
async def cleanup_backups_api(
    request: Request,
    payload: BackupCleanup | None = None,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
    service: BackupService = Depends(get_backup_service),
):
    days = payload.days_to_keep if payload and payload.days_to_keep else BACKUP_RETENTION_DAYS
    deleted = await run_in_threadpool(service.clean_old_backups, days)
    await _record(db, admin, ActivityCode.CLEANUP_BACKUPS, request, deleted_count=deleted, days=days)
    return success_response(
        "Old backups cleaned",
        BackupCleanupResult(deleted_count=deleted, days_to_keep=days),
    )


@router.delete("/{filename}", response_model=APIResponse)
async def delete_backup_api(
    filename: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_admin),
    service: BackupService = Depends(get_backup_service),
):
    await run_in_threadpool(service.delete_backup, filename)
    await _record(db, admin, ActivityCode.DELETE_BACKUP, request, filename=filename)
    return success_response("Backup deleted successfully", None)
