"""Integration tests for the product endpoints."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi import status

from tests.integration.utils import auth_headers


def _in_days(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def _create(client, username: str, **overrides) -> dict:
    payload = {"name": "Latte", "expiryDate": _in_days(3)}
    payload.update(overrides)
    response = client.post(f"/products/{username}", json=payload, headers=auth_headers())
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["product"]


def test_product_crud(client, product_payload):
    response = client.get("/products/anna")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"products": []}

    response = client.post("/products/anna", json=product_payload, headers=auth_headers())
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    product = body["product"]
    assert product["name"] == "Mozzarella di bufala"
    assert product["quantity"] == pytest.approx(2.0)
    assert product["unit"] == "pz"
    assert product["storageType"] == "frigo"
    assert product["expiryDate"] == product_payload["expiryDate"]

    response = client.get("/products/anna")
    assert [entry["id"] for entry in response.json()["products"]] == [product["id"]]

    response = client.put(f"/products/anna/{product['id']}", json={"quantity": 5}, headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["product"]["quantity"] == pytest.approx(5.0)

    response = client.delete(f"/products/anna/{product['id']}", headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}
    assert client.get("/products/anna").json() == {"products": []}


def test_products_sorted_by_expiry_and_filtered(client):
    _create(client, "anna", name="Pasta", expiryDate=_in_days(200), storageType="dispensa")
    _create(client, "anna", name="Latte", expiryDate=_in_days(-2))
    _create(client, "anna", name="Yogurt", expiryDate=_in_days(1))

    names = [entry["name"] for entry in client.get("/products/anna").json()["products"]]
    assert names == ["Latte", "Yogurt", "Pasta"]

    added = client.get("/products/anna", params={"sort": "added"}).json()["products"]
    assert [entry["name"] for entry in added] == ["Pasta", "Latte", "Yogurt"]

    pantry = client.get("/products/anna", params={"storage": "dispensa"}).json()["products"]
    assert [entry["name"] for entry in pantry] == ["Pasta"]


def test_products_partitioned_by_username(client):
    _create(client, "anna")

    assert client.get("/products/marco").json() == {"products": []}


def test_manual_date_entry(client):
    product = _create(client, "anna", expiryDate="05/03/2030")

    assert product["expiryDate"] == "2030-03-05"


def test_adjust_clamps_at_zero(client):
    product = _create(client, "anna", quantity=1)

    response = client.post(f"/products/anna/{product['id']}/adjust", json={"delta": -1}, headers=auth_headers())
    assert response.json()["product"]["quantity"] == 0

    response = client.post(f"/products/anna/{product['id']}/adjust", json={"delta": -1}, headers=auth_headers())
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["product"]["quantity"] == 0

    response = client.put(f"/products/anna/{product['id']}", json={"quantity": -4}, headers=auth_headers())
    assert response.json()["product"]["quantity"] == 0


def test_summary_counts(client):
    _create(client, "anna", expiryDate=_in_days(-1))
    _create(client, "anna", expiryDate=_in_days(2))
    _create(client, "anna", expiryDate=_in_days(30), storageType="dispensa")
    client.post("/shopping/anna", json={"name": "Pane"}, headers=auth_headers())

    response = client.get("/products/anna/summary")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "total": 3,
        "fridge": 2,
        "pantry": 1,
        "expired": 1,
        "expiring_soon": 1,
        "shopping_active": 1,
    }


def test_create_validation_errors(client):
    response = client.post("/products/anna", json={"name": "", "expiryDate": _in_days(1)}, headers=auth_headers())
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "Invalid request"
    assert response.json()["details"]

    response = client.post("/products/anna", json={"name": "Latte"}, headers=auth_headers())
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post(
        "/products/anna",
        json={"name": "Latte", "expiryDate": _in_days(1), "storageType": "freezer"},
        headers=auth_headers(),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_duplicate_id_conflict(client):
    _create(client, "anna", id="p1")

    response = client.post(
        "/products/anna",
        json={"id": "p1", "name": "Altro", "expiryDate": _in_days(1)},
        headers=auth_headers(),
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert "already exists" in response.json()["error"]


def test_unknown_product_returns_404(client):
    response = client.put("/products/anna/missing", json={"quantity": 1}, headers=auth_headers())
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Product missing not found"}

    response = client.delete("/products/anna/missing", headers=auth_headers())
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_repository_failure_surfaces_as_500(app):
    from fastapi.testclient import TestClient

    from dispensa.server import deps

    def broken_provider(username):
        raise RuntimeError("database unavailable")

    app.dependency_overrides[deps.get_product_provider] = lambda: broken_provider
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/products/anna")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Internal server error"}


def test_non_finite_quantities_rejected(client):
    product = _create(client, "anna", quantity=1)
    headers = {**auth_headers(), "Content-Type": "application/json"}

    response = client.post(
        "/products/anna",
        content='{"name": "Latte", "expiryDate": "%s", "quantity": 1e400}' % _in_days(1),
        headers=headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.put(f"/products/anna/{product['id']}", content='{"quantity": 1e400}', headers=headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post(f"/products/anna/{product['id']}/adjust", content='{"delta": -1e400}', headers=headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    listed = client.get("/products/anna").json()["products"]
    assert [entry["quantity"] for entry in listed] == [1]


def test_adjust_overflow_rejected_and_not_stored(client):
    product = _create(client, "anna", quantity=1.5e308)

    response = client.post(
        f"/products/anna/{product['id']}/adjust", json={"delta": 1.5e308}, headers=auth_headers()
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "Invalid request"
    listed = client.get("/products/anna").json()["products"]
    assert listed[0]["quantity"] == pytest.approx(1.5e308)


def test_blank_category_uses_default(client):
    product = _create(client, "anna", category="   ")

    assert product["category"] == "Latticini"

    response = client.post(
        "/products/anna",
        json={"name": "Latte", "expiryDate": _in_days(1), "category": "x" * 65},
        headers=auth_headers(),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
