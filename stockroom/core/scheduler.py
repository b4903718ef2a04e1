import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from starlette.concurrency import run_in_threadpool

from stockroom.core.config import BACKUP_RETENTION_DAYS
from stockroom.core.exceptions import AppException
from stockroom.services.backups.backup_service import BackupService

logger = logging.getLogger(__name__)


async def auto_backup_job(backup_service: BackupService):
    try:
        backup = await run_in_threadpool(backup_service.create_backup, "auto")
    except AppException as exc:
        logger.error("Scheduled backup failed: %s", exc.detail)
        return
    logger.info("Scheduled backup written", extra={"backup_file": backup.filename})


async def backup_cleanup_job(backup_service: BackupService, days_to_keep: int):
    deleted = await run_in_threadpool(backup_service.clean_old_backups, days_to_keep)
    logger.info("Scheduled backup cleanup", extra={"deleted": deleted})


def build_scheduler(
    backup_service: BackupService,
    days_to_keep: int = BACKUP_RETENTION_DAYS,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()

    # daily at 02:00
    scheduler.add_job(
        auto_backup_job,
        "cron",
        hour=2,
        minute=0,
        id="auto_backup",
        kwargs={"backup_service": backup_service},
        replace_existing=True,
    )

    # daily at 02:30
    scheduler.add_job(
        backup_cleanup_job,
        "cron",
        hour=2,
        minute=30,
        id="backup_cleanup",
        kwargs={"backup_service": backup_service, "days_to_keep": days_to_keep},
        replace_existing=True,
    )

    return scheduler
