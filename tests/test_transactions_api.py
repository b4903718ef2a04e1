from datetime import date

API = "/api"
TODAY = date.today().isoformat()


async def create_product(client, headers, **overrides):
    payload = {"unique_code": "HTTP-1", "name": "Bracket", "unit": "pcs", "min_stock": 2}
    payload.update(overrides)
    response = await client.post(f"{API}/products/", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def test_requires_authentication(client):
    response = await client.get(f"{API}/transactions/")

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "UNAUTHORIZED"


async def test_inbound_outbound_flow(client, admin_headers):
    product = await create_product(client, admin_headers)

    inbound = await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": product["id"], "quantity": 10, "transaction_date": TODAY, "unit_price": "3.00"},
        headers=admin_headers,
    )
    assert inbound.status_code == 201
    assert inbound.json()["data"]["total_amount"] == "30.00"

    outbound = await client.post(
        f"{API}/transactions/outbound",
        json={"product_id": product["id"], "quantity": 4, "transaction_date": TODAY, "reason": "order 17"},
        headers=admin_headers,
    )
    assert outbound.status_code == 201

    fetched = await client.get(f"{API}/products/{product['id']}", headers=admin_headers)
    assert fetched.json()["data"]["current_stock"] == 6

    listing = await client.get(f"{API}/transactions/", params={"product_id": product["id"]}, headers=admin_headers)
    items = listing.json()["data"]["items"]
    assert listing.json()["data"]["total"] == 2
    assert listing.json()["data"]["page"] == 1
    assert listing.json()["data"]["pages"] == 1
    assert [i["type"] for i in items] == ["OUTBOUND", "INBOUND"]
    assert items[0]["product_name"] == "Bracket"

    by_type = await client.get(f"{API}/transactions/type/INBOUND", headers=admin_headers)
    assert by_type.json()["data"]["total"] == 1

    movements = await client.get(f"{API}/inventory/movements/{product['id']}", headers=admin_headers)
    assert [m["stock_after_transaction"] for m in movements.json()["data"]] == [6, 10]


async def test_insufficient_stock_contract(client, admin_headers):
    product = await create_product(client, admin_headers, unit="kg")

    response = await client.post(
        f"{API}/transactions/outbound",
        json={"product_id": product["id"], "quantity": 1, "transaction_date": TODAY},
        headers=admin_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "INSUFFICIENT_STOCK"
    assert body["details"] == {"current_stock": 0, "requested_quantity": 1, "unit": "kg"}


async def test_validation_errors_are_400(client, admin_headers):
    product = await create_product(client, admin_headers)

    response = await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": product["id"], "quantity": 0, "transaction_date": TODAY},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


async def test_unknown_product_is_404(client, admin_headers):
    response = await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": 777, "quantity": 1, "transaction_date": TODAY},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"


async def test_delete_and_recompute_are_admin_only(client, admin_headers, user_headers):
    product = await create_product(client, admin_headers)
    inbound = await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": product["id"], "quantity": 5, "transaction_date": TODAY},
        headers=user_headers,
    )
    transaction_id = inbound.json()["data"]["id"]

    denied = await client.delete(f"{API}/transactions/{transaction_id}", headers=user_headers)
    assert denied.status_code == 403

    deleted = await client.delete(f"{API}/transactions/{transaction_id}", headers=admin_headers)
    assert deleted.status_code == 200

    missing = await client.get(f"{API}/transactions/{transaction_id}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "TRANSACTION_NOT_FOUND"

    recompute = await client.post(f"{API}/transactions/recompute", headers=admin_headers)
    assert recompute.status_code == 200
    assert recompute.json()["data"]["corrected"] == 0


async def test_delete_that_would_go_negative_is_refused(client, admin_headers):
    product = await create_product(client, admin_headers)
    inbound = await client.post(
        f"{API}/transactions/inbound",
        json={"product_id": product["id"], "quantity": 5, "transaction_date": TODAY},
        headers=admin_headers,
    )
    await client.post(
        f"{API}/transactions/outbound",
        json={"product_id": product["id"], "quantity": 5, "transaction_date": TODAY},
        headers=admin_headers,
    )

    response = await client.delete(f"{API}/transactions/{inbound.json()['data']['id']}", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVARIANT_VIOLATION"


async def test_inventory_endpoints(client, admin_headers):
    product = await create_product(client, admin_headers)

    summary = await client.get(f"{API}/inventory/summary", headers=admin_headers)
    assert summary.json()["data"]["out_of_stock_count"] == 1

    status = await client.get(f"{API}/inventory/status/{product['id']}", headers=admin_headers)
    assert status.json()["data"]["stock_status"] == "OUT_OF_STOCK"

    turnover = await client.get(f"{API}/inventory/turnover", params={"product_id": 999}, headers=admin_headers)
    assert turnover.status_code == 404


async def test_spreadsheet_export_and_template(client, admin_headers):
    await create_product(client, admin_headers)

    export = await client.get(f"{API}/export/inventory", headers=admin_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="inventory_' in export.headers["content-disposition"]

    template = await client.get(f"{API}/export/template/inbound", headers=admin_headers)
    assert template.status_code == 200


async def test_upload_rejects_wrong_extension(client, admin_headers):
    response = await client.post(
        f"{API}/export/upload/products",
        files={"file": ("products.csv", b"a,b\n1,2\n", "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_FILE"
