import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from stockroom.core.exceptions import AppException, InvalidInputError, NotFoundError
from stockroom.constants.error_codes import ErrorCode
from stockroom.services.backups.backup_service import BackupService, BACKUP_NAME_RE, META_SUFFIX


@pytest.fixture
def db_file(tmp_path):
    path = tmp_path / "live.db"
    path.write_bytes(b"version-1")
    return path


@pytest.fixture
def service(tmp_path, db_file):
    return BackupService(str(tmp_path / "backups"), str(db_file))


def test_create_writes_copy_and_metadata(service, db_file):
    backup = service.create_backup("nightly")

    assert BACKUP_NAME_RE.match(backup.filename)
    path = os.path.join(service.backup_dir, backup.filename)
    with open(path, "rb") as fh:
        assert fh.read() == b"version-1"

    with open(path + META_SUFFIX, encoding="utf-8") as fh:
        meta = json.load(fh)
    assert meta["reason"] == "nightly"
    assert meta["file_size"] == len(b"version-1")
    assert meta["original_path"] == str(db_file)


def test_backups_in_the_same_second_do_not_collide(service):
    first = service.create_backup()
    second = service.create_backup()

    assert first.filename != second.filename
    assert len(service.list_backups()) == 2


def test_restore_takes_safety_copy_first(service, db_file):
    original = service.create_backup()
    db_file.write_bytes(b"version-2")

    safety = service.restore_backup(original.filename)

    assert db_file.read_bytes() == b"version-1"
    assert safety.meta.reason == "before_restore"
    with open(os.path.join(service.backup_dir, safety.filename), "rb") as fh:
        assert fh.read() == b"version-2"


@pytest.mark.parametrize("name", ["../live.db", "inventory_backup_x.db", "notes.txt"])
def test_names_outside_the_pattern_are_refused(service, name):
    with pytest.raises(InvalidInputError):
        service.delete_backup(name)


def test_missing_backup(service):
    with pytest.raises(NotFoundError) as exc:
        service.restore_backup("inventory_backup_2020-01-01_000000.db")
    assert exc.value.error_code == ErrorCode.BACKUP_NOT_FOUND


def test_delete_removes_metadata_too(service):
    backup = service.create_backup()

    service.delete_backup(backup.filename)

    assert service.list_backups() == []
    assert os.listdir(service.backup_dir) == []


def test_cleanup_only_removes_old_backups(service):
    old = service.create_backup()
    old_path = os.path.join(service.backup_dir, old.filename)
    stale = (datetime.now(timezone.utc) - timedelta(days=45)).timestamp()
    os.utime(old_path, (stale, stale))
    recent = service.create_backup()

    deleted = service.clean_old_backups(30)

    assert deleted == 1
    assert [b.filename for b in service.list_backups()] == [recent.filename]


def test_non_sqlite_store_is_unsupported(tmp_path):
    service = BackupService(str(tmp_path / "backups"), None)

    with pytest.raises(AppException) as exc:
        service.create_backup()
    assert exc.value.error_code == ErrorCode.BACKUP_UNSUPPORTED
