import threading

from stockroom.core import scheduler


def record_thread(monkeypatch, service, name: str) -> list:
    seen = []
    original = getattr(service, name)

    def wrapper(*args, **kwargs):
        seen.append(threading.get_ident())
        return original(*args, **kwargs)

    monkeypatch.setattr(service, name, wrapper)
    return seen


async def test_auto_backup_job_copies_in_a_worker_thread(backup_service, monkeypatch):
    seen = record_thread(monkeypatch, backup_service, "create_backup")

    await scheduler.auto_backup_job(backup_service)

    assert len(seen) == 1
    assert seen[0] != threading.get_ident()
    assert [b.meta.reason for b in backup_service.list_backups()] == ["auto"]


async def test_cleanup_job_keeps_recent_backups(backup_service, monkeypatch):
    backup_service.create_backup("manual")
    seen = record_thread(monkeypatch, backup_service, "clean_old_backups")

    await scheduler.backup_cleanup_job(backup_service, days_to_keep=30)

    assert seen and seen[0] != threading.get_ident()
    assert len(backup_service.list_backups()) == 1


async def test_build_scheduler_registers_daily_jobs(backup_service):
    jobs = scheduler.build_scheduler(backup_service, days_to_keep=7)

    assert {job.id for job in jobs.get_jobs()} == {"auto_backup", "backup_cleanup"}
