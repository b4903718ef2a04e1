# stockroom/services/backups/backup_service.py

import logging
import json
import os
import re
import shutil
from datetime import datetime, timedelta, timezone

from starlette.concurrency import run_in_threadpool

from stockroom.core.db import Database
from stockroom.core.exceptions import AppException, InvalidInputError, NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.schemas.backups.backup_schemas import BackupOut, BackupMeta

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "inventory_backup_"
META_SUFFIX = ".meta.json"
BACKUP_NAME_RE = re.compile(r"^inventory_backup_\d{4}-\d{2}-\d{2}_\d{6}(_\d+)?\.db$")


class BackupService:
    """File level backups of a SQLite database."""

    def __init__(self, backup_dir: str, db_path: str | None):
        self.backup_dir = os.path.abspath(backup_dir)
        self.db_path = os.path.abspath(db_path) if db_path else None

    @classmethod
    def for_database(cls, database: Database, backup_dir: str) -> "BackupService":
        return cls(backup_dir, database.sqlite_path)

    # -------------------------
    # helpers
    # -------------------------
    def _require_sqlite(self) -> str:
        if not self.db_path:
            raise AppException(
                400,
                "Backups are only available for SQLite deployments",
                ErrorCode.BACKUP_UNSUPPORTED,
            )
        return self.db_path

    def _ensure_dir(self):
        os.makedirs(self.backup_dir, exist_ok=True)

    def _resolve(self, filename: str) -> str:
        if not BACKUP_NAME_RE.match(filename or ""):
            raise InvalidInputError(
                "Invalid backup file name",
                details={"filename": filename},
            )
        path = os.path.join(self.backup_dir, filename)
        if not os.path.isfile(path):
            raise NotFoundError(
                "Backup file not found",
                ErrorCode.BACKUP_NOT_FOUND,
                {"filename": filename},
            )
        return path

    def _new_backup_path(self, now: datetime) -> str:
        stem = f"{BACKUP_PREFIX}{now.strftime('%Y-%m-%d')}_{now.strftime('%H%M%S')}"
        path = os.path.join(self.backup_dir, f"{stem}.db")
        counter = 1
        while os.path.exists(path):
            path = os.path.join(self.backup_dir, f"{stem}_{counter}.db")
            counter += 1
        return path

    @staticmethod
    def _read_meta(path: str) -> BackupMeta | None:
        meta_path = path + META_SUFFIX
        if not os.path.isfile(meta_path):
            return None
        try:
            with open(meta_path, "r", encoding="utf-8") as fh:
                return BackupMeta(**json.load(fh))
        except (OSError, ValueError, TypeError):
            logger.warning("Unreadable backup metadata", extra={"path": meta_path})
            return None

    # -------------------------
    # operations
    # -------------------------
    def create_backup(self, reason: str | None = None) -> BackupOut:
        db_path = self._require_sqlite()
        if not os.path.isfile(db_path):
            raise NotFoundError(
                "Database file not found",
                ErrorCode.BACKUP_NOT_FOUND,
                {"path": db_path},
            )

        self._ensure_dir()
        now = datetime.now()
        backup_path = self._new_backup_path(now)
        shutil.copyfile(db_path, backup_path)

        meta = BackupMeta(
            backup_time=datetime.now(timezone.utc),
            reason=reason or "manual",
            original_path=db_path,
            file_size=os.path.getsize(backup_path),
        )
        with open(backup_path + META_SUFFIX, "w", encoding="utf-8") as fh:
            fh.write(meta.model_dump_json(indent=2))

        logger.info("Backup created", extra={"path": backup_path, "reason": meta.reason})
        return BackupOut(
            filename=os.path.basename(backup_path),
            size=meta.file_size,
            created_at=datetime.fromtimestamp(os.path.getmtime(backup_path), tz=timezone.utc),
            meta=meta,
        )

    def list_backups(self) -> list[BackupOut]:
        if not os.path.isdir(self.backup_dir):
            return []

        backups = []
        for filename in os.listdir(self.backup_dir):
            if not BACKUP_NAME_RE.match(filename):
                continue
            path = os.path.join(self.backup_dir, filename)
            stat = os.stat(path)
            backups.append(
                BackupOut(
                    filename=filename,
                    size=stat.st_size,
                    created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    meta=self._read_meta(path),
                )
            )

        backups.sort(key=lambda b: (b.created_at, b.filename), reverse=True)
        return backups

    def restore_backup(self, filename: str) -> BackupOut:
        """Copy a backup over the live database file.

        The caller must have closed every connection to the database first.
        Returns the safety backup taken just before the overwrite.
        """
        db_path = self._require_sqlite()
        source = self._resolve(filename)

        safety = self.create_backup("before_restore")
        shutil.copyfile(source, db_path)

        logger.warning("Database restored from backup", extra={"backup_file": filename})
        return safety

    def delete_backup(self, filename: str):
        path = self._resolve(filename)
        os.remove(path)
        if os.path.isfile(path + META_SUFFIX):
            os.remove(path + META_SUFFIX)
        logger.info("Backup deleted", extra={"backup_file": filename})

    def clean_old_backups(self, days_to_keep: int = 30, now: datetime | None = None) -> int:
        if days_to_keep < 1:
            raise InvalidInputError("days_to_keep must be at least 1")

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_to_keep)
        deleted = 0
        for backup in self.list_backups():
            if backup.created_at < cutoff:
                self.delete_backup(backup.filename)
                deleted += 1

        logger.info("Old backups cleaned", extra={"deleted": deleted, "days_to_keep": days_to_keep})
        return deleted


async def restore_database(database: Database, service: BackupService, filename: str) -> BackupOut:
    """Drop pooled connections, then restore the file underneath them."""
    await database.dispose()
    return await run_in_threadpool(service.restore_backup, filename)
