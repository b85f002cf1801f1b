"""Security-related integration tests."""

from __future__ import annotations

from datetime import date

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from dispensa.config import get_settings
from dispensa.db.repository import reset_repository_state
from dispensa.server.app import create_app


@pytest.fixture()
def secure_client(tmp_path, monkeypatch) -> TestClient:
    db_path = tmp_path / "secure.db"
    monkeypatch.setenv("DISPENSA_DATABASE_PATH", str(db_path))
    monkeypatch.setenv("DISPENSA_API_TOKEN", "secret-token")
    get_settings.cache_clear()
    reset_repository_state()
    app = create_app()
    client = TestClient(app)
    yield client
    monkeypatch.delenv("DISPENSA_API_TOKEN", raising=False)
    reset_repository_state()
    get_settings.cache_clear()


def test_products_require_api_token(secure_client):
    payload = {"name": "Latte", "expiryDate": date.today().isoformat()}

    response = secure_client.post("/products/anna", json=payload)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Unauthorized"}

    headers = {"Authorization": "Bearer secret-token"}
    response = secure_client.post("/products/anna", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED


def test_shopping_list_accepts_api_key_header(secure_client):
    response = secure_client.get("/shopping/anna")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = secure_client.get("/shopping/anna", headers={"X-API-Key": "secret-token"})
    assert response.status_code == status.HTTP_200_OK


def test_query_token_and_wrong_token(secure_client):
    response = secure_client.get("/products/anna", params={"api_token": "secret-token"})
    assert response.status_code == status.HTTP_200_OK

    response = secure_client.get("/products/anna", headers={"Authorization": "Bearer nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_public_routes_stay_open(secure_client):
    assert secure_client.get("/health").status_code == status.HTTP_200_OK
    assert secure_client.get("/").status_code == status.HTTP_200_OK
    assert secure_client.get("/scanner/config").status_code == status.HTTP_200_OK
