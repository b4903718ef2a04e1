import threading

API = "/api"


async def test_backup_lifecycle(client, admin_headers):
    created = await client.post(f"{API}/backups/", json={"reason": "before upgrade"}, headers=admin_headers)
    assert created.status_code == 201
    filename = created.json()["data"]["filename"]

    listing = await client.get(f"{API}/backups/", headers=admin_headers)
    assert listing.json()["data"]["total"] == 1

    deleted = await client.delete(f"{API}/backups/{filename}", headers=admin_headers)
    assert deleted.status_code == 200

    listing = await client.get(f"{API}/backups/", headers=admin_headers)
    assert listing.json()["data"]["total"] == 0


async def test_restore_brings_back_earlier_state(client, admin_headers):
    snapshot = (await client.post(f"{API}/backups/", headers=admin_headers)).json()["data"]["filename"]

    await client.post(
        f"{API}/products/",
        json={"unique_code": "AFTER-1", "name": "Late", "unit": "pcs"},
        headers=admin_headers,
    )

    restored = await client.post(f"{API}/backups/restore", json={"filename": snapshot}, headers=admin_headers)
    assert restored.status_code == 200
    assert restored.json()["data"]["meta"]["reason"] == "before_restore"

    products = await client.get(f"{API}/products/", headers=admin_headers)
    assert products.json()["data"]["total"] == 0


async def test_backups_require_admin(client, user_headers):
    response = await client.get(f"{API}/backups/", headers=user_headers)

    assert response.status_code == 403


async def test_backup_file_work_stays_off_the_event_loop(client, admin_headers, backup_service, monkeypatch):
    seen = []
    original = backup_service.create_backup

    def create_backup(reason=None):
        seen.append(threading.get_ident())
        return original(reason)

    monkeypatch.setattr(backup_service, "create_backup", create_backup)

    response = await client.post(f"{API}/backups/", headers=admin_headers)

    assert response.status_code == 201
    assert seen and seen[0] != threading.get_ident()
