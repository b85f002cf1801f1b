"""Integration tests for barcode lookup, decoding and scanner configuration."""

from __future__ import annotations

import asyncio

from fastapi import status

from dispensa.lookup.openfoodfacts import LookupServiceError
from dispensa.models.lookup import DecodedBarcode, ProductLookup, ScannerConfig
from dispensa.scanning.barcode import BarcodeDecodeError
from dispensa.server import deps


class StubLookupClient:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.codes: list[str] = []

    def lookup(self, code: str) -> ProductLookup:
        self.codes.append(code)
        if self.error:
            raise self.error
        return self.result


def test_scanner_config_defaults(client):
    response = client.get("/scanner/config")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "backends": ["camera", "upload", "manual"],
        "lookup_enabled": True,
        "max_upload_bytes": 8 * 1024 * 1024,
    }


def test_scanner_config_from_environment(monkeypatch):
    from fastapi.testclient import TestClient

    from dispensa.config import get_settings
    from dispensa.server.app import create_app

    monkeypatch.setenv("DISPENSA_SCANNER_BACKENDS", "manual,upload")
    get_settings.cache_clear()

    response = TestClient(create_app()).get("/scanner/config")

    assert response.json()["backends"] == ["manual", "upload"]


def test_barcode_lookup_found(app, client):
    stub = StubLookupClient(
        ProductLookup(barcode="8001505005707", found=True, name="Passata", brand="Mutti")
    )
    app.dependency_overrides[deps.get_lookup_client] = lambda: stub

    response = client.get("/barcode/8001505005707")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "Passata"
    assert stub.codes == ["8001505005707"]


def test_barcode_lookup_upstream_failure(app, client):
    app.dependency_overrides[deps.get_lookup_client] = lambda: StubLookupClient(
        error=LookupServiceError("Open Food Facts lookup failed: timeout")
    )

    response = client.get("/barcode/8001505005707")

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert "timeout" in response.json()["error"]


def test_barcode_lookup_invalid_code(app, client):
    app.dependency_overrides[deps.get_lookup_client] = lambda: StubLookupClient(
        error=ValueError("Invalid barcode 'abc': expected 6-14 digits")
    )

    response = client.get("/barcode/abc")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_barcode_lookup_disabled_skips_upstream(app, client):
    stub = StubLookupClient(error=AssertionError("should not be called"))
    app.dependency_overrides[deps.get_lookup_client] = lambda: stub
    app.dependency_overrides[deps.get_scanner_config] = lambda: ScannerConfig(lookup_enabled=False)

    response = client.get("/barcode/12345678")

    assert response.json() == {
        "barcode": "12345678",
        "found": False,
        "name": "12345678",
        "image_url": None,
        "brand": None,
        "category": None,
    }
    assert stub.codes == []


def test_barcode_decode_upload(app, client):
    received: list[bytes] = []

    def decoder(content: bytes) -> DecodedBarcode:
        received.append(content)
        return DecodedBarcode(barcode="8001505005707", symbology="EAN13")

    app.dependency_overrides[deps.get_barcode_decoder] = lambda: decoder

    response = client.post("/barcode/decode", files={"file": ("code.png", b"fake-png", "image/png")})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"barcode": "8001505005707", "symbology": "EAN13"}
    assert received == [b"fake-png"]


def test_barcode_decode_failure(app, client):
    def decoder(content: bytes) -> DecodedBarcode:
        raise BarcodeDecodeError("No barcode found in image")

    app.dependency_overrides[deps.get_barcode_decoder] = lambda: decoder

    response = client.post("/barcode/decode", files={"file": ("code.png", b"fake-png", "image/png")})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json() == {"error": "No barcode found in image"}


def test_barcode_decode_rejects_large_and_empty_uploads(app, client):
    app.dependency_overrides[deps.get_scanner_config] = lambda: ScannerConfig(max_upload_bytes=4)

    response = client.post("/barcode/decode", files={"file": ("code.png", b"too-large", "image/png")})
    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    response = client.post("/barcode/decode", files={"file": ("code.png", b"", "image/png")})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_barcode_lookup_validates_code_when_disabled(app, client):
    app.dependency_overrides[deps.get_scanner_config] = lambda: ScannerConfig(lookup_enabled=False)

    response = client.get("/barcode/abc")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.get("/barcode/%2012345678%20")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["barcode"] == "12345678"


def test_barcode_decode_runs_off_the_event_loop(app, client):
    loop_threads: list[bool] = []

    def decoder(content: bytes) -> DecodedBarcode:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop_threads.append(False)
        else:
            loop_threads.append(True)
        return DecodedBarcode(barcode="12345670", symbology="EAN8")

    app.dependency_overrides[deps.get_barcode_decoder] = lambda: decoder

    response = client.post("/barcode/decode", files={"file": ("code.png", b"fake-png", "image/png")})

    assert response.status_code == status.HTTP_200_OK
    assert loop_threads == [False]
