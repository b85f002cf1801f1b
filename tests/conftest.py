"""Shared pytest fixtures for the Dispensa test suite."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dispensa.config import get_settings
from dispensa.db.repository import reset_repository_state
from dispensa.server.app import create_app


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def product_payload() -> Dict[str, object]:
    """Wire payload for a fridge product expiring in five days."""

    return {
        "name": "Mozzarella di bufala",
        "category": "Mozzarella",
        "quantity": 2,
        "unit": "pz",
        "expiryDate": (date.today() + timedelta(days=5)).isoformat(),
        "storageType": "frigo",
    }


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_dispensa.db"
    monkeypatch.setenv("DISPENSA_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("DISPENSA_API_TOKEN", raising=False)
    monkeypatch.delenv("DISPENSA_USER", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("DISPENSA_DATABASE_PATH", raising=False)
    get_settings.cache_clear()
