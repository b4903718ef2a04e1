from datetime import date

API = "/api"


async def test_mutations_are_logged(client, admin_headers):
    product = (
        await client.post(
            f"{API}/products/",
            json={"unique_code": "LOG-1", "name": "Hinge", "unit": "pcs"},
            headers=admin_headers,
        )
    ).json()["data"]
    await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": product["id"], "quantity": 9, "transaction_date": date.today().isoformat()},
        headers=admin_headers,
    )

    response = await client.get(f"{API}/activities/", params={"code": "INBOUND"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    entry = data["items"][0]
    assert entry["table_name"] == "transactions"
    assert entry["message"].startswith("Admin (admin) received 9pcs of Hinge")


async def test_failed_outbound_is_not_logged(client, admin_headers):
    product = (
        await client.post(
            f"{API}/products/",
            json={"unique_code": "LOG-2", "name": "Latch", "unit": "pcs"},
            headers=admin_headers,
        )
    ).json()["data"]
    await client.post(
        f"{API}/transactions/outbound",
        json={"product_id": product["id"], "quantity": 1, "transaction_date": date.today().isoformat()},
        headers=admin_headers,
    )

    response = await client.get(f"{API}/activities/", params={"code": "OUTBOUND"}, headers=admin_headers)

    assert response.json()["data"]["total"] == 0


async def test_activity_listing_is_admin_only(client, user_headers):
    response = await client.get(f"{API}/activities/", headers=user_headers)

    assert response.status_code == 403


async def test_invalid_sort_field(client, admin_headers):
    response = await client.get(f"{API}/activities/", params={"sort_by": "message"}, headers=admin_headers)

    assert response.status_code == 400
